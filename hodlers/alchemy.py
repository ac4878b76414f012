"""Alchemy NFT API transport for collection owner lookups."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

import requests

from .aggregation import OwnershipRecord, OwnersPage
from .config import DEFAULT_PAGE_LIMIT, DEFAULT_TIMEOUT, Settings, redact_endpoint
from .errors import ConfigurationError, UpstreamFailure

_ALCHEMY_NFT_OWNERS = "https://{network}.g.alchemy.com/nft/v2/{api_key}/getOwnersForCollection"
_LOGGER = logging.getLogger("hodlers.alchemy")


def owners_endpoint(api_key: str, network: str = "polygon-mainnet") -> str:
    return _ALCHEMY_NFT_OWNERS.format(network=network, api_key=api_key)


def resolve_owners_endpoint(settings: Settings, endpoint: Optional[str] = None) -> str:
    if endpoint:
        return endpoint
    if settings.endpoint:
        return settings.endpoint
    if not settings.api_key:
        raise ConfigurationError("Missing ALCHEMY_API_KEY.")
    return owners_endpoint(settings.api_key, settings.network)


def _parse_balance(value: object) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
        try:
            if value.lower().startswith("0x"):
                return int(value, 16)
            return int(value)
        except ValueError:
            try:
                parsed = float(value)
            except ValueError:
                return 0
            return int(parsed) if math.isfinite(parsed) else 0
    return 0


def parse_owners_page(data: dict) -> OwnersPage:
    records: List[OwnershipRecord] = []
    for entry in data.get("ownerAddresses") or []:
        if not isinstance(entry, dict):
            continue
        owner = entry.get("ownerAddress")
        if not owner:
            continue
        balances = [
            (str(item.get("tokenId") or ""), _parse_balance(item.get("balance")))
            for item in entry.get("tokenBalances") or []
            if isinstance(item, dict)
        ]
        records.append(OwnershipRecord(wallet=owner, balances=balances))
    return OwnersPage(records=records, next_cursor=data.get("pageKey") or None)


def fetch_owners_page(
    endpoint: str,
    contract: str,
    cursor: Optional[str] = None,
    *,
    timeout: int = DEFAULT_TIMEOUT,
    limit: int = DEFAULT_PAGE_LIMIT,
    session: Optional[requests.Session] = None,
) -> OwnersPage:
    params = {
        "contractAddress": contract,
        "withTokenBalances": "true",
        "limit": str(limit),
    }
    if cursor:
        params["pageKey"] = cursor
    http = session or requests
    try:
        response = http.get(
            endpoint,
            params=params,
            headers={"accept": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        _LOGGER.warning(
            "alchemy request failed endpoint=%s contract=%s error=%s",
            redact_endpoint(endpoint),
            contract,
            exc,
        )
        raise UpstreamFailure(contract, None, str(exc)) from exc
    if not response.ok:
        _LOGGER.warning(
            "alchemy error contract=%s status=%s body=%s",
            contract,
            response.status_code,
            response.text[:300],
        )
        raise UpstreamFailure(contract, response.status_code, response.text)
    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamFailure(contract, response.status_code, "Invalid JSON in response") from exc
    if not isinstance(data, dict):
        raise UpstreamFailure(contract, response.status_code, "Unexpected response shape")
    return parse_owners_page(data)


class AlchemyOwnersClient:
    """`fetch_page` callable bound to one endpoint and HTTP session."""

    def __init__(
        self,
        endpoint: str,
        timeout: int = DEFAULT_TIMEOUT,
        limit: int = DEFAULT_PAGE_LIMIT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self.limit = limit
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, endpoint: Optional[str] = None) -> "AlchemyOwnersClient":
        return cls(
            resolve_owners_endpoint(settings, endpoint),
            timeout=settings.timeout,
            limit=settings.page_limit,
        )

    def __call__(self, contract: str, cursor: Optional[str] = None) -> OwnersPage:
        return fetch_owners_page(
            self.endpoint,
            contract,
            cursor,
            timeout=self.timeout,
            limit=self.limit,
            session=self.session,
        )

    def close(self) -> None:
        self.session.close()
