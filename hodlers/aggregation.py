"""Holder aggregation across one or more token contracts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .errors import PaginationAborted, UpstreamFailure
from .normalize import normalize_collection_ids

_LOGGER = logging.getLogger("hodlers.aggregation")


@dataclass(frozen=True)
class OwnershipRecord:
    wallet: str
    balances: List[Tuple[str, int]] = field(default_factory=list)


@dataclass(frozen=True)
class OwnersPage:
    records: List[OwnershipRecord]
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class WalletTotal:
    wallet: str
    total: int
    breakdown: Dict[str, int]
    collections_owned: str

    def to_dict(self) -> dict:
        return {
            "wallet": self.wallet,
            "total": self.total,
            "collectionsOwned": self.collections_owned,
            "breakdown": dict(self.breakdown),
        }


@dataclass(frozen=True)
class AggregationResult:
    wallets: List[WalletTotal]
    contracts: List[str]

    @property
    def total_contracts(self) -> int:
        return len(self.contracts)

    def to_dict(self) -> dict:
        return {
            "result": [wallet.to_dict() for wallet in self.wallets],
            "contracts": list(self.contracts),
            "totalContracts": self.total_contracts,
        }


FetchPage = Callable[[str, Optional[str]], OwnersPage]


def _record_sum(record: OwnershipRecord) -> int:
    return sum(balance for _, balance in record.balances)


def _fold_page(
    contract: str,
    page: OwnersPage,
    totals: Dict[str, int],
    breakdown: Dict[str, Dict[str, int]],
    accumulate_breakdown: bool,
) -> int:
    """Fold one provider page into the running maps. Returns wallets recorded."""

    recorded = 0
    for record in page.records:
        if not record.wallet:
            continue
        sum_for_contract = _record_sum(record)
        if sum_for_contract <= 0:
            continue
        totals[record.wallet] = totals.get(record.wallet, 0) + sum_for_contract
        per_wallet = breakdown.setdefault(record.wallet, {})
        if accumulate_breakdown:
            per_wallet[contract] = per_wallet.get(contract, 0) + sum_for_contract
        else:
            # Overwrite: a wallet repeated across pages keeps its last page's count.
            per_wallet[contract] = sum_for_contract
        recorded += 1
    return recorded


def _collect_contract(
    contract: str,
    fetch_page: FetchPage,
    totals: Dict[str, int],
    breakdown: Dict[str, Dict[str, int]],
    accumulate_breakdown: bool,
    max_pages: int,
) -> None:
    cursor: Optional[str] = None
    seen_cursors: set[str] = set()
    page_count = 0
    while True:
        page = fetch_page(contract, cursor)
        page_count += 1
        recorded = _fold_page(contract, page, totals, breakdown, accumulate_breakdown)
        _LOGGER.debug(
            "aggregate page contract=%s page=%s records=%s recorded=%s",
            contract,
            page_count,
            len(page.records),
            recorded,
        )
        cursor = page.next_cursor
        if not cursor:
            break
        if cursor in seen_cursors:
            raise PaginationAborted(contract, f"repeated page key after {page_count} pages")
        if max_pages and page_count >= max_pages:
            raise PaginationAborted(contract, f"page limit exceeded ({max_pages} pages)")
        seen_cursors.add(cursor)
    _LOGGER.info("aggregate contract done contract=%s pages=%s", contract, page_count)


def rank_wallets(
    totals: Dict[str, int],
    breakdown: Dict[str, Dict[str, int]],
    contracts: List[str],
) -> List[WalletTotal]:
    """Sort wallets by total descending, ties by wallet address ascending."""

    ordered = sorted(
        ((wallet, total) for wallet, total in totals.items() if total > 0),
        key=lambda item: (-item[1], item[0]),
    )
    wallets: List[WalletTotal] = []
    for wallet, total in ordered:
        per_wallet = breakdown.get(wallet) or {}
        wallets.append(
            WalletTotal(
                wallet=wallet,
                total=total,
                breakdown=dict(per_wallet),
                collections_owned=f"{len(per_wallet)}/{len(contracts)}",
            )
        )
    return wallets


def aggregate_holders(
    raw_contracts: Iterable[object],
    fetch_page: FetchPage,
    *,
    accumulate_breakdown: bool = False,
    max_pages: int = 0,
) -> AggregationResult:
    """Page through every contract and rank wallets by combined item count.

    Contracts are processed one at a time, in normalized order, and the first
    upstream failure aborts the whole run. ``fetch_page`` receives the contract
    and the page cursor (``None`` for the first page).
    """

    contracts = normalize_collection_ids(raw_contracts)
    _LOGGER.info(
        "aggregate start contracts=%s accumulate_breakdown=%s",
        len(contracts),
        accumulate_breakdown,
    )

    totals: Dict[str, int] = {}
    breakdown: Dict[str, Dict[str, int]] = {}
    for contract in contracts:
        try:
            _collect_contract(
                contract,
                fetch_page,
                totals,
                breakdown,
                accumulate_breakdown,
                max_pages,
            )
        except UpstreamFailure as exc:
            _LOGGER.warning(
                "aggregate aborted contract=%s status=%s detail=%s",
                exc.contract,
                exc.status,
                exc.detail[:300],
            )
            raise

    wallets = rank_wallets(totals, breakdown, contracts)
    _LOGGER.info("aggregate complete contracts=%s wallets=%s", len(contracts), len(wallets))
    return AggregationResult(wallets=wallets, contracts=contracts)
