"""Error kinds raised by the holders aggregation."""

from __future__ import annotations

from typing import Optional


class HoldersError(Exception):
    pass


class InvalidRequest(HoldersError, ValueError):
    """Malformed contract list, rejected before any fetch."""


class ConfigurationError(HoldersError, ValueError):
    """No usable provider endpoint could be built from settings."""


class UpstreamFailure(HoldersError, RuntimeError):
    """The ownership provider returned a non-success result for a contract."""

    prefix = "Alchemy error"

    def __init__(self, contract: str, status: Optional[int], detail: str = "") -> None:
        self.contract = contract
        self.status = status
        self.detail = detail
        reason = detail if status is None else f"{status} {detail}"
        super().__init__(f"{self.prefix} for contract {contract}: {reason}".rstrip())


class PaginationAborted(UpstreamFailure):
    """Paging for a contract was stopped locally (repeated page key or page limit)."""

    prefix = "Pagination aborted"

    def __init__(self, contract: str, detail: str) -> None:
        super().__init__(contract, None, detail)
