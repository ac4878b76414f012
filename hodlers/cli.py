"""CLI for Hodlers."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from .addresses import extract_contract_addresses
from .aggregation import AggregationResult, aggregate_holders
from .alchemy import AlchemyOwnersClient
from .config import Settings
from .errors import ConfigurationError, InvalidRequest, UpstreamFailure
from .export import write_holders_csv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hodlers")
    parser.add_argument("--verbose", action="store_true", help="Enable INFO logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    holders_parser = subparsers.add_parser("holders", help="Rank wallets across token collections")
    holders_parser.add_argument("inputs", nargs="*", help="Contract addresses or marketplace URLs")
    holders_parser.add_argument("--file", help="Read inputs from a file, one per line")
    holders_parser.add_argument("--endpoint", help="Override the getOwnersForCollection endpoint URL")
    holders_parser.add_argument("--network", help="Alchemy network (default: polygon-mainnet)")
    holders_parser.add_argument("--timeout", type=int, help="Request timeout in seconds")
    holders_parser.add_argument("--limit", type=int, help="Owners per provider page")
    holders_parser.add_argument(
        "--accumulate-breakdown",
        action="store_true",
        help="Sum per-collection counts across pages instead of keeping the last page",
    )
    holders_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    holders_parser.add_argument("--csv", help="Write the ranked holders to a CSV file")

    extract_parser = subparsers.add_parser("extract", help="Extract contract addresses from inputs")
    extract_parser.add_argument("inputs", nargs="*", help="Contract addresses or marketplace URLs")
    extract_parser.add_argument("--file", help="Read inputs from a file, one per line")

    return parser


def _read_inputs(inputs: Sequence[str], file_path: Optional[str]) -> List[str]:
    lines = list(inputs)
    if file_path:
        try:
            text = Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidRequest(f"Cannot read {file_path}: {exc}") from exc
        lines.extend(text.splitlines())
    return lines


def _settings_with_overrides(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides = {}
    if args.network:
        overrides["network"] = args.network
    if args.timeout:
        overrides["timeout"] = args.timeout
    if args.limit:
        overrides["page_limit"] = args.limit
    if not overrides:
        return settings
    return replace(settings, **overrides)


def _print_table(result: AggregationResult) -> None:
    print(f"contracts: {result.total_contracts}")
    for contract in result.contracts:
        print(f"  {contract}")
    if not result.wallets:
        print("no holders found")
        return
    for rank, wallet in enumerate(result.wallets, start=1):
        print(f"{rank:>5}  {wallet.wallet}  total={wallet.total}  collections={wallet.collections_owned}")


def _run_holders(args: argparse.Namespace) -> int:
    try:
        lines = _read_inputs(args.inputs, args.file)
    except InvalidRequest as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    addresses, invalid = extract_contract_addresses(lines)
    for item in invalid:
        print(f"skipping unrecognized input: {item}", file=sys.stderr)
    if not addresses:
        print("error: no valid contract addresses or URLs found", file=sys.stderr)
        return 2

    try:
        settings = _settings_with_overrides(args)
        client = AlchemyOwnersClient.from_settings(settings, args.endpoint)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    try:
        result = aggregate_holders(
            addresses,
            client,
            accumulate_breakdown=args.accumulate_breakdown,
            max_pages=settings.max_pages,
        )
    except InvalidRequest as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except UpstreamFailure as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        client.close()

    if args.csv:
        out_path = Path(args.csv)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8", newline="") as fh:
            rows = write_holders_csv(result, fh)
        print(f"Wrote {out_path} ({rows} rows)", file=sys.stderr)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_table(result)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO)

    if args.command == "holders":
        return _run_holders(args)
    if args.command == "extract":
        try:
            lines = _read_inputs(args.inputs, args.file)
        except InvalidRequest as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        addresses, invalid = extract_contract_addresses(lines)
        for item in invalid:
            print(f"skipping unrecognized input: {item}", file=sys.stderr)
        for address in addresses:
            print(address)
        return 0 if addresses else 2

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
