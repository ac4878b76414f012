"""Contract address extraction from raw input, marketplace and explorer URLs."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple


_DIRECT_RE = re.compile(r"^(0x[a-fA-F0-9]{40})$")
_URL_PATTERNS = (
    re.compile(r"decentraland\.org/marketplace/contracts/(0x[a-fA-F0-9]{40})", re.IGNORECASE),
    re.compile(r"polygonscan\.com/address/(0x[a-fA-F0-9]{40})", re.IGNORECASE),
)

_TOKEN_SPLIT_RE = re.compile(r"[\s,]+")
_MIN_REPORTED_LEN = 10
_MAX_REPORTED_LEN = 50


def extract_contract_address(text: str) -> Optional[str]:
    trimmed = (text or "").strip()
    match = _DIRECT_RE.match(trimmed)
    if match:
        return match.group(1)
    for pattern in _URL_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            return match.group(1)
    return None


def extract_contract_addresses(lines: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Split input on whitespace and commas into addresses and unrecognized tokens.

    Short tokens are dropped silently; longer ones are reported cut to 50 chars.
    """

    addresses: List[str] = []
    invalid: List[str] = []
    for line in lines:
        for token in _TOKEN_SPLIT_RE.split(line or ""):
            if not token:
                continue
            address = extract_contract_address(token)
            if address:
                addresses.append(address)
            elif len(token) > _MIN_REPORTED_LEN:
                suffix = "..." if len(token) > _MAX_REPORTED_LEN else ""
                invalid.append(token[:_MAX_REPORTED_LEN] + suffix)
    return addresses, invalid
