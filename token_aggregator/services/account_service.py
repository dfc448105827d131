"""
Account valuation service for Token Price Aggregator.
Combines Hive account balances, the HIVE/USD reference rate and a concurrent
price batch over the account's Hive-Engine tokens.
"""

import asyncio
from typing import Any, Dict, Optional

from ..api.schemas import AccountTokensResponse, OverrideEntry, RetryPolicy, TokenPriceResponse
from ..core.config import settings
from ..core.logging_config import create_logger
from ..providers.base import AccountNotFoundError
from ..providers.coingecko_provider import CoinGeckoProvider
from ..providers.hive_engine_provider import HiveEngineProvider
from ..providers.hive_provider import HiveProvider
from .price_aggregator import OverrideUnavailableError, PriceOrchestrator
from .retry import Delay, RetryingFetcher

logger = create_logger(__name__)


def parse_asset_amount(amount: Any) -> float:
    """Parse a Hive asset string such as ``"12.345 HIVE"`` into its numeric part."""
    if amount is None:
        return 0.0
    if isinstance(amount, (int, float)):
        return float(amount)
    
    text = str(amount).strip()
    if not text:
        return 0.0
    return float(text.split(' ')[0])


def compute_hive_power(vesting_shares: float, total_vesting_shares: float, total_vesting_fund_hive: float) -> float:
    """Convert an account's vesting shares into HIVE."""
    if total_vesting_shares == 0:
        return 0.0
    return (vesting_shares / total_vesting_shares) * total_vesting_fund_hive


class AccountService:
    """Service that values a Hive account and its tokens."""
    
    def __init__(
        self,
        hive: Optional[HiveProvider] = None,
        hive_engine: Optional[HiveEngineProvider] = None,
        coingecko: Optional[CoinGeckoProvider] = None,
        policy: Optional[RetryPolicy] = None,
        concurrency: Optional[int] = None,
        delay: Delay = asyncio.sleep
    ):
        self.hive = hive or HiveProvider()
        self.hive_engine = hive_engine or HiveEngineProvider()
        self.coingecko = coingecko or CoinGeckoProvider()
        self.policy = policy or settings.get_retry_policy()
        self.concurrency = concurrency or settings.price_concurrency
        self._delay = delay
        self.orchestrator = PriceOrchestrator(
            self.hive_engine.get_token_price,
            delay=delay,
            attempt_timeout=settings.request_timeout
        )
    
    @property
    def _providers(self):
        return {
            self.hive.name: self.hive,
            self.hive_engine.name: self.hive_engine,
            self.coingecko.name: self.coingecko
        }
    
    async def initialize(self) -> None:
        """Open connections to all providers."""
        logger.info("Initializing account service")
        for provider in self._providers.values():
            await provider.connect()
    
    async def shutdown(self) -> None:
        """Close connections to all providers."""
        for name, provider in self._providers.items():
            try:
                await provider.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting provider", extra={
                    "provider": name,
                    "error": str(e)
                })
        logger.info("Account service shutdown complete")
    
    async def get_provider_status(self) -> Dict[str, bool]:
        """Get connection status of all providers."""
        return {name: await provider.health_check() for name, provider in self._providers.items()}
    
    async def get_reference_price(self) -> float:
        """Fetch the HIVE/USD rate that prices the override token.
        
        Retried like any other lookup, but failing to obtain it is fatal.
        """
        async def lookup(_: str) -> float:
            return await self.coingecko.get_hive_usd_price()
        
        fetcher = RetryingFetcher(lookup, self.policy, delay=self._delay, attempt_timeout=settings.request_timeout)
        outcome = await fetcher.fetch("hive")
        
        if not outcome.is_success:
            raise OverrideUnavailableError("HIVE price unavailable", settings.override_symbol)
        
        logger.info("Fetched Hive price", extra={"price": outcome.value})
        return outcome.value
    
    async def get_account_tokens(self, username: str) -> AccountTokensResponse:
        """
        Value an account's Hive balances and price every Hive-Engine token it holds.
        
        Raises:
            AccountNotFoundError: If the account does not exist or holds no tokens
            OverrideUnavailableError: If the HIVE/USD rate cannot be obtained
        """
        logger.info("Fetching account data", extra={"account": username})
        account = await self.hive.get_account(username)
        
        hive_price = await self.get_reference_price()
        
        properties = await self.hive.get_dynamic_global_properties()
        hive_power = compute_hive_power(
            parse_asset_amount(account.get('vesting_shares')),
            parse_asset_amount(properties.get('total_vesting_shares')),
            parse_asset_amount(properties.get('total_vesting_fund_hive'))
        )
        
        balances = await self.hive_engine.get_token_balances(username)
        if not balances:
            raise AccountNotFoundError(f"No tokens found for the user {username}", self.hive_engine.name)
        
        aggregate = await self.orchestrator.aggregate(
            [balance.symbol for balance in balances],
            override=OverrideEntry(key=settings.override_symbol, value=hive_price),
            concurrency=self.concurrency,
            policy=self.policy
        )
        
        if aggregate.failed_keys:
            logger.warning("Some token prices unavailable", extra={
                "account": username,
                "failed_tokens": sorted(aggregate.failed_keys)
            })
        
        return AccountTokensResponse(
            account=username,
            balance=parse_asset_amount(account.get('balance')),
            savings_balance=parse_asset_amount(account.get('savings_balance')),
            hbd_balance=parse_asset_amount(account.get('hbd_balance')),
            savings_hbd_balance=parse_asset_amount(account.get('savings_hbd_balance')),
            hive_power=hive_power,
            hive_price=hive_price,
            tokens_data=aggregate.values,
            failed_tokens=sorted(aggregate.failed_keys),
            other_tokens=balances
        )
    
    async def get_token_price(self, symbol: str) -> TokenPriceResponse:
        """Price a single Hive-Engine token."""
        symbol = symbol.strip().upper()
        fetcher = RetryingFetcher(
            self.hive_engine.get_token_price,
            self.policy,
            delay=self._delay,
            attempt_timeout=settings.request_timeout
        )
        outcome = await fetcher.fetch(symbol)
        
        return TokenPriceResponse(
            token=symbol,
            price=outcome.value,
            found=outcome.is_success,
            reason=outcome.reason,
            attempts=outcome.attempts
        )


# Global account service instance
account_service = AccountService()
