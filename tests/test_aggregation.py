from __future__ import annotations

import pytest

from fakes import CONTRACT_A, CONTRACT_B, CONTRACT_C, FakeProvider, record
from hodlers.aggregation import OwnersPage, aggregate_holders
from hodlers.errors import InvalidRequest, PaginationAborted, UpstreamFailure


def test_two_collections_combine_into_one_total(two_contract_provider):
    result = aggregate_holders([CONTRACT_A, CONTRACT_B], two_contract_provider)

    top = result.wallets[0]
    assert top.wallet == "0xwallet1"
    assert top.total == 5
    assert top.breakdown == {CONTRACT_A: 3, CONTRACT_B: 2}
    assert top.collections_owned == "2/2"
    assert result.total_contracts == 2


def test_zero_balance_wallet_is_left_out():
    provider = FakeProvider(
        {
            CONTRACT_A: [[record("0xzero", 0, 0), record("0xholder", 1)]],
            CONTRACT_B: [[record("0xzero", 2)]],
        }
    )
    result = aggregate_holders([CONTRACT_A, CONTRACT_B], provider)
    by_wallet = {wallet.wallet: wallet for wallet in result.wallets}

    assert by_wallet["0xzero"].total == 2
    assert by_wallet["0xzero"].breakdown == {CONTRACT_B: 2}
    assert by_wallet["0xzero"].collections_owned == "1/2"


def test_wallet_with_only_zero_balances_never_appears():
    provider = FakeProvider({CONTRACT_A: [[record("0xzero", 0), record("0xneg", -3)]]})
    result = aggregate_holders([CONTRACT_A], provider)
    assert result.wallets == []


def test_failure_on_second_collection_stops_the_run():
    provider = FakeProvider(
        {
            CONTRACT_A: [[record("0xwallet1", 1)]],
            CONTRACT_B: [None],
            CONTRACT_C: [[record("0xwallet1", 1)]],
        },
        status=503,
    )
    with pytest.raises(UpstreamFailure) as excinfo:
        aggregate_holders([CONTRACT_A, CONTRACT_B, CONTRACT_C], provider)

    assert excinfo.value.contract == CONTRACT_B
    assert excinfo.value.status == 503
    assert CONTRACT_B in str(excinfo.value)
    assert all(contract != CONTRACT_C for contract, _ in provider.calls)


def test_failure_mid_pagination_stops_the_run():
    provider = FakeProvider({CONTRACT_A: [[record("0xwallet1", 1)], None]})
    with pytest.raises(UpstreamFailure):
        aggregate_holders([CONTRACT_A], provider)
    assert provider.calls == [(CONTRACT_A, None), (CONTRACT_A, "1")]


def test_no_holders_is_an_empty_result():
    provider = FakeProvider({CONTRACT_A: [[]], CONTRACT_B: [[]]})
    result = aggregate_holders([CONTRACT_A, CONTRACT_B], provider)
    assert result.wallets == []
    assert result.to_dict() == {
        "result": [],
        "contracts": [CONTRACT_A, CONTRACT_B],
        "totalContracts": 2,
    }


def test_duplicate_contracts_are_fetched_once():
    provider = FakeProvider({CONTRACT_A: [[record("0xwallet1", 1)]]})
    result = aggregate_holders([CONTRACT_A.upper().replace("0X", "0x"), f" {CONTRACT_A} "], provider)
    assert result.contracts == [CONTRACT_A]
    assert provider.calls == [(CONTRACT_A, None)]
    assert result.wallets[0].collections_owned == "1/1"


def test_invalid_request_fetches_nothing():
    provider = FakeProvider({})
    with pytest.raises(InvalidRequest):
        aggregate_holders([], provider)
    assert provider.calls == []


def test_pages_follow_cursor_until_exhausted():
    provider = FakeProvider(
        {CONTRACT_A: [[record("0xwallet1", 1)], [record("0xwallet2", 2)], [record("0xwallet3", 3)]]}
    )
    result = aggregate_holders([CONTRACT_A], provider)
    assert provider.calls == [(CONTRACT_A, None), (CONTRACT_A, "1"), (CONTRACT_A, "2")]
    assert [wallet.wallet for wallet in result.wallets] == ["0xwallet3", "0xwallet2", "0xwallet1"]


def test_empty_string_cursor_ends_pagination():
    calls = []

    def fetch_page(contract, cursor):
        calls.append(cursor)
        return OwnersPage(records=[record("0xwallet1", 1)], next_cursor="")

    aggregate_holders([CONTRACT_A], fetch_page)
    assert calls == [None]


def test_breakdown_keeps_last_page_while_total_sums_every_page():
    provider = FakeProvider({CONTRACT_A: [[record("0xwallet1", 4)], [record("0xwallet1", 1)]]})
    result = aggregate_holders([CONTRACT_A], provider)
    wallet = result.wallets[0]
    assert wallet.total == 5
    assert wallet.breakdown == {CONTRACT_A: 1}


def test_accumulate_breakdown_sums_across_pages():
    provider = FakeProvider({CONTRACT_A: [[record("0xwallet1", 4)], [record("0xwallet1", 1)]]})
    result = aggregate_holders([CONTRACT_A], provider, accumulate_breakdown=True)
    wallet = result.wallets[0]
    assert wallet.total == 5
    assert wallet.breakdown == {CONTRACT_A: 5}


def test_equal_totals_sort_by_wallet_address():
    provider = FakeProvider(
        {CONTRACT_A: [[record("0xcc", 2), record("0xaa", 2), record("0xbb", 5), record("0xab", 2)]]}
    )
    result = aggregate_holders([CONTRACT_A], provider)
    assert [wallet.wallet for wallet in result.wallets] == ["0xbb", "0xaa", "0xab", "0xcc"]


def test_result_properties_hold():
    provider = FakeProvider(
        {
            CONTRACT_A: [[record("0x1", 1, 1), record("0x2", 3)], [record("0x3", 1)]],
            CONTRACT_B: [[record("0x2", 2), record("0x4", 0)]],
            CONTRACT_C: [[record("0x1", 7)]],
        }
    )
    contracts = [CONTRACT_A, CONTRACT_B, CONTRACT_C]
    result = aggregate_holders(contracts, provider)

    totals = [wallet.total for wallet in result.wallets]
    assert totals == sorted(totals, reverse=True)
    for wallet in result.wallets:
        owned, requested = wallet.collections_owned.split("/")
        assert wallet.total > 0
        assert int(requested) == result.total_contracts
        assert int(owned) == len(wallet.breakdown) <= int(requested)
        assert set(wallet.breakdown) <= set(contracts)
        assert all(count > 0 for count in wallet.breakdown.values())
        assert wallet.total == sum(wallet.breakdown.values())


def test_rerun_against_same_pages_is_identical():
    pages = {
        CONTRACT_A: [[record("0x1", 2), record("0x2", 2)], [record("0x3", 1)]],
        CONTRACT_B: [[record("0x2", 1), record("0x1", 1)]],
    }
    first = aggregate_holders([CONTRACT_A, CONTRACT_B], FakeProvider(pages))
    second = aggregate_holders([CONTRACT_A, CONTRACT_B], FakeProvider(pages))
    assert first == second


def test_records_without_wallet_are_ignored():
    provider = FakeProvider({CONTRACT_A: [[record("", 3), record("0x1", 1)]]})
    result = aggregate_holders([CONTRACT_A], provider)
    assert [wallet.wallet for wallet in result.wallets] == ["0x1"]


def test_page_limit_aborts_runaway_pagination():
    def fetch_page(contract, cursor):
        next_cursor = str(int(cursor or 0) + 1)
        return OwnersPage(records=[record("0x1", 1)], next_cursor=next_cursor)

    with pytest.raises(UpstreamFailure) as excinfo:
        aggregate_holders([CONTRACT_A], fetch_page, max_pages=3)
    assert excinfo.value.status is None
    assert "page limit" in excinfo.value.detail
    assert str(excinfo.value) == f"Pagination aborted for contract {CONTRACT_A}: page limit exceeded (3 pages)"


def test_repeated_cursor_aborts():
    def fetch_page(contract, cursor):
        return OwnersPage(records=[], next_cursor="same")

    with pytest.raises(UpstreamFailure) as excinfo:
        aggregate_holders([CONTRACT_A], fetch_page)
    assert "repeated page key" in excinfo.value.detail
    assert isinstance(excinfo.value, PaginationAborted)
    assert not str(excinfo.value).startswith("Alchemy")


def test_wallet_to_dict_wire_format(two_contract_provider):
    result = aggregate_holders([CONTRACT_A, CONTRACT_B], two_contract_provider)
    assert result.to_dict()["result"][0] == {
        "wallet": "0xwallet1",
        "total": 5,
        "collectionsOwned": "2/2",
        "breakdown": {CONTRACT_A: 3, CONTRACT_B: 2},
    }
