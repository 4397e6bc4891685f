from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from ..errors import HttpFetchError


@dataclass
class HttpResult:
    url: str
    status_code: int
    text: str


class HttpFetcher:
    """
    Thin async GET wrapper. Every request carries the configured User-Agent.
    Non-2xx responses and transport errors raise HttpFetchError.
    """

    def __init__(
        self,
        user_agent: str,
        *,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "HttpFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, timeout=self.timeout_s)
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str) -> HttpResult:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, timeout=self.timeout_s)

        print(f"http_get(): url={url}")
        try:
            r = await self._client.get(url, headers={"User-Agent": self.user_agent})
        except httpx.HTTPError as e:
            raise HttpFetchError(url, f"Failed to fetch {url}: {type(e).__name__}: {e}") from e

        if not r.is_success:
            raise HttpFetchError(
                url,
                f"Failed to fetch {url}: {r.status_code} {r.reason_phrase}",
                status_code=r.status_code,
            )
        return HttpResult(url=str(r.url), status_code=r.status_code, text=r.text)

    async def fetch(self, url: str) -> str:
        return (await self.get(url)).text
