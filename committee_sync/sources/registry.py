from __future__ import annotations

from typing import Dict, Type

from .adapters.meti import MetiCommitteeAdapter
from .adapters.occto import OcctoNewsFeedAdapter
from .base import BaseAdapter
from .http import HttpFetcher
from .throttle import RateLimitedQueue
from .types import SourceConfig


ADAPTERS: Dict[str, Type[BaseAdapter]] = {
    "meti": MetiCommitteeAdapter,
    "occto": OcctoNewsFeedAdapter,
}


def get_adapter(
    cfg: SourceConfig,
    fetcher: HttpFetcher,
    *,
    request_interval_s: float = 0.5,
) -> BaseAdapter:
    cls = ADAPTERS[cfg.adapter]
    return cls(cfg, fetcher, RateLimitedQueue(request_interval_s))
