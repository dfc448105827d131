"""Unit-test conftest: provider doubles and shared fixtures.

All fixtures here are available to every test under tests/unit/ without import.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from token_aggregator.api.schemas import RetryPolicy
from token_aggregator.services.account_service import AccountService

from .fakes import RecordingDelay


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def delay() -> RecordingDelay:
    return RecordingDelay()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, initial_delay=0.01, multiplier=2)


def _provider(name: str) -> MagicMock:
    provider = MagicMock()
    provider.name = name
    provider.connect = AsyncMock()
    provider.disconnect = AsyncMock()
    provider.health_check = AsyncMock(return_value=True)
    return provider


@pytest.fixture
def hive():
    provider = _provider("hive")
    provider.get_account = AsyncMock(return_value={
        "name": "alice",
        "balance": "100.500 HIVE",
        "savings_balance": "10.000 HIVE",
        "hbd_balance": "5.250 HBD",
        "savings_hbd_balance": "1.000 HBD",
        "vesting_shares": "2000.000000 VESTS",
    })
    provider.get_dynamic_global_properties = AsyncMock(return_value={
        "total_vesting_shares": "4000.000000 VESTS",
        "total_vesting_fund_hive": "2.000 HIVE",
    })
    return provider


@pytest.fixture
def hive_engine():
    provider = _provider("hive_engine")
    provider.get_token_balances = AsyncMock(return_value=[])
    provider.get_token_price = AsyncMock(return_value=0.0)
    return provider


@pytest.fixture
def coingecko():
    provider = _provider("coingecko")
    provider.get_hive_usd_price = AsyncMock(return_value=0.25)
    return provider


@pytest.fixture
def service(hive, hive_engine, coingecko, fast_policy, delay) -> AccountService:
    return AccountService(
        hive=hive,
        hive_engine=hive_engine,
        coingecko=coingecko,
        policy=fast_policy,
        concurrency=5,
        delay=delay,
    )
