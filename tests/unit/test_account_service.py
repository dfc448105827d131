"""Tests for AccountService: balance arithmetic and the account valuation flow."""

from __future__ import annotations

import pytest

from token_aggregator.api.schemas import FailureReason, TokenBalance
from token_aggregator.providers.base import AccountNotFoundError, DataNotFoundError, TransientLookupError
from token_aggregator.services.account_service import compute_hive_power, parse_asset_amount
from token_aggregator.services.price_aggregator import OverrideUnavailableError

pytestmark = pytest.mark.unit


# ── Balance arithmetic ────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ("12.345 HIVE", 12.345),
    ("0.000 HBD", 0.0),
    ("2000.000000 VESTS", 2000.0),
    (None, 0.0),
    ("", 0.0),
    (7, 7.0),
])
def test_parse_asset_amount(raw, expected):
    assert parse_asset_amount(raw) == pytest.approx(expected)


def test_compute_hive_power():
    assert compute_hive_power(2000.0, 4000.0, 2.0) == pytest.approx(1.0)
    assert compute_hive_power(10.0, 0.0, 5.0) == 0.0


# ── get_account_tokens ────────────────────────────────────────────────────────

def _balances(*symbols: str) -> list[TokenBalance]:
    return [TokenBalance(account="alice", symbol=symbol, balance="1") for symbol in symbols]


@pytest.mark.asyncio
async def test_account_tokens_valuation(service, hive_engine, coingecko):
    hive_engine.get_token_balances.return_value = _balances("BEE", "SWAP.HIVE", "DEAD", "FLAKY")
    prices = {"BEE": 0.28}

    async def price(symbol: str) -> float:
        if symbol == "FLAKY":
            raise TransientLookupError("down", "hive_engine", symbol)
        if symbol not in prices:
            raise DataNotFoundError("no data", "hive_engine", symbol)
        return prices[symbol]

    hive_engine.get_token_price.side_effect = price

    response = await service.get_account_tokens("alice")

    assert response.account == "alice"
    assert response.balance == pytest.approx(100.5)
    assert response.savings_balance == pytest.approx(10.0)
    assert response.hbd_balance == pytest.approx(5.25)
    assert response.savings_hbd_balance == pytest.approx(1.0)
    assert response.hive_power == pytest.approx(1.0)
    assert response.hive_price == 0.25
    assert response.tokens_data == {"BEE": 0.28, "SWAP.HIVE": 0.25, "DEAD": 0.0, "FLAKY": 0.0}
    assert response.failed_tokens == ["DEAD", "FLAKY"]
    assert [b.symbol for b in response.other_tokens] == ["BEE", "SWAP.HIVE", "DEAD", "FLAKY"]

    looked_up = [call.args[0] for call in hive_engine.get_token_price.await_args_list]
    assert "SWAP.HIVE" not in looked_up
    assert looked_up.count("FLAKY") == service.policy.max_attempts
    assert looked_up.count("DEAD") == 1


@pytest.mark.asyncio
async def test_unknown_account(service, hive):
    hive.get_account.side_effect = AccountNotFoundError("Account not found: ghost", "hive")

    with pytest.raises(AccountNotFoundError):
        await service.get_account_tokens("ghost")


@pytest.mark.asyncio
async def test_account_without_tokens(service, hive_engine):
    hive_engine.get_token_balances.return_value = []

    with pytest.raises(AccountNotFoundError) as excinfo:
        await service.get_account_tokens("alice")

    assert "No tokens found" in excinfo.value.message
    hive_engine.get_token_price.assert_not_awaited()


@pytest.mark.asyncio
async def test_reference_price_failure_is_fatal(service, coingecko, hive_engine, delay):
    coingecko.get_hive_usd_price.side_effect = TransientLookupError("down", "coingecko")
    hive_engine.get_token_balances.return_value = _balances("BEE")

    with pytest.raises(OverrideUnavailableError):
        await service.get_account_tokens("alice")

    assert coingecko.get_hive_usd_price.await_count == service.policy.max_attempts
    assert len(delay.calls) == service.policy.max_attempts - 1
    hive_engine.get_token_price.assert_not_awaited()


@pytest.mark.asyncio
async def test_reference_price_recovers_after_retry(service, coingecko):
    coingecko.get_hive_usd_price.side_effect = [TransientLookupError("down", "coingecko"), 0.4]

    assert await service.get_reference_price() == 0.4


# ── get_token_price ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_single_token_price(service, hive_engine):
    hive_engine.get_token_price.return_value = 1.5

    response = await service.get_token_price(" starpro ")

    assert response.token == "STARPRO"
    assert response.price == 1.5
    assert response.found is True
    hive_engine.get_token_price.assert_awaited_once_with("STARPRO")


@pytest.mark.asyncio
async def test_single_token_without_data(service, hive_engine):
    hive_engine.get_token_price.side_effect = DataNotFoundError("no data", "hive_engine", "NEW")

    response = await service.get_token_price("NEW")

    assert response.price == 0
    assert response.found is False
    assert response.reason == FailureReason.NO_DATA
    assert response.attempts == 1


# ── lifecycle ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_initialize_and_shutdown_manage_all_providers(service, hive, hive_engine, coingecko):
    await service.initialize()
    await service.shutdown()

    for provider in (hive, hive_engine, coingecko):
        provider.connect.assert_awaited_once()
        provider.disconnect.assert_awaited_once()

    assert await service.get_provider_status() == {"hive": True, "hive_engine": True, "coingecko": True}
