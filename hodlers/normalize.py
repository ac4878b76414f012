"""Contract identifier normalization."""

from __future__ import annotations

from typing import Iterable, List

from .errors import InvalidRequest


def normalize_collection_ids(raw: Iterable[object]) -> List[str]:
    """Trim, lowercase and dedupe contract ids, keeping first-occurrence order."""

    if not isinstance(raw, (list, tuple)) or not raw:
        raise InvalidRequest("Must include a non-empty array `contracts`.")

    seen: set[str] = set()
    contracts: List[str] = []
    for item in raw:
        value = "" if item is None else str(item)
        value = value.strip().lower()
        if not value or value in seen:
            continue
        seen.add(value)
        contracts.append(value)

    if not contracts:
        raise InvalidRequest("No usable contract addresses in `contracts`.")
    return contracts
