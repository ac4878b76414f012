"""CSV export of aggregated holders."""

from __future__ import annotations

import csv
from typing import List, TextIO

from .aggregation import AggregationResult

DCL_PROFILE_URL = "https://decentraland.org/marketplace/accounts/{wallet}"


def contract_label(contract: str) -> str:
    return f"Contract {contract[:6]}...{contract[38:]}"


def csv_headers(result: AggregationResult) -> List[str]:
    headers = ["Rank", "Wallet Address", "DCL Profile"]
    if result.total_contracts > 1:
        headers.extend(["Collections Owned", "Total Collections"])
    headers.append("Total Items")
    headers.extend(contract_label(contract) for contract in result.contracts)
    return headers


def write_holders_csv(result: AggregationResult, fh: TextIO) -> int:
    """Write one row per wallet in rank order. Returns the number of rows."""

    writer = csv.writer(fh, lineterminator="\n")
    writer.writerow(csv_headers(result))
    for rank, wallet in enumerate(result.wallets, start=1):
        row: List[object] = [rank, wallet.wallet, DCL_PROFILE_URL.format(wallet=wallet.wallet)]
        if result.total_contracts > 1:
            row.extend([len(wallet.breakdown), result.total_contracts])
        row.append(wallet.total)
        row.extend(wallet.breakdown.get(contract, 0) for contract in result.contracts)
        writer.writerow(row)
    return len(result.wallets)
