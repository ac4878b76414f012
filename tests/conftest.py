from __future__ import annotations

import pytest

from fakes import CONTRACT_A, CONTRACT_B, FakeProvider, record


@pytest.fixture
def two_contract_provider() -> FakeProvider:
    return FakeProvider(
        {
            CONTRACT_A: [[record("0xwallet1", 1, 2), record("0xwallet2", 1)]],
            CONTRACT_B: [[record("0xwallet1", 2)]],
        }
    )
