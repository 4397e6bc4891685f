from __future__ import annotations

from typing import Optional


class CommitteeSyncError(Exception):
    """Base class for every error raised by committee_sync."""


class ConfigError(CommitteeSyncError):
    pass


class HttpFetchError(CommitteeSyncError):
    """Non-2xx response or transport failure while fetching a URL."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ListingFetchError(CommitteeSyncError):
    """
    The top-level listing (HTML page or JSON feed) of a source could not be
    fetched or decoded. Fatal for that source's run.
    """

    def __init__(self, source_id: str, message: str) -> None:
        super().__init__(message)
        self.source_id = source_id


class TableStoreError(CommitteeSyncError):
    """The remote table service rejected or failed a call."""


class ReconciliationWriteError(CommitteeSyncError):
    """
    A row write failed mid-upsert. Rows written before the failure stay
    written; the remaining records of that source are not attempted.
    """

    def __init__(self, table_name: str, row_index: Optional[int], message: str) -> None:
        super().__init__(message)
        self.table_name = table_name
        self.row_index = row_index
