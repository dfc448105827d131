"""
Hive-Engine data provider implementation.
Provides token market metrics and account token balances via the contracts RPC.
"""

from typing import List, Optional
import httpx

from .base import BaseDataProvider, DataNotFoundError, TransientLookupError
from ..api.schemas import TokenBalance
from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)


class HiveEngineProvider(BaseDataProvider):
    """Hive-Engine sidechain provider for token prices and balances."""
    
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(
            name="hive_engine",
            base_url=base_url or settings.hive_engine_rpc_url,
            timeout=timeout,
            transport=transport
        )
    
    async def _find(self, contract: str, table: str, query: dict, limit: int, symbol: Optional[str] = None):
        return await self._rpc_call(
            self.base_url,
            "find",
            {
                "contract": contract,
                "table": table,
                "query": query,
                "limit": limit
            },
            symbol=symbol
        )
    
    async def get_token_price(self, symbol: str) -> float:
        """
        Get the last traded price of a token.
        
        Args:
            symbol: Hive-Engine token symbol
            
        Returns:
            Last price as a float
            
        Raises:
            DataNotFoundError: If the market has no metrics row or no last price
            TransientLookupError: If the remote call fails
        """
        logger.debug("Fetching token price", extra={"provider": self.name, "symbol": symbol})
        
        rows = await self._find("market", "metrics", {"symbol": symbol}, 1, symbol=symbol)
        
        if not rows:
            raise DataNotFoundError(f"No price data found for {symbol}", self.name, symbol)
        
        last_price = rows[0].get("lastPrice") if isinstance(rows[0], dict) else None
        if last_price in (None, ""):
            raise DataNotFoundError(f"No last price for {symbol}", self.name, symbol)
        
        try:
            price = float(last_price)
        except (TypeError, ValueError) as e:
            raise TransientLookupError(
                f"Unparseable last price for {symbol}: {last_price!r}",
                self.name,
                symbol
            ) from e
        
        logger.debug("Fetched token price", extra={
            "provider": self.name,
            "symbol": symbol,
            "price": price
        })
        return price
    
    async def get_token_balances(self, account: str, limit: Optional[int] = None) -> List[TokenBalance]:
        """Get all Hive-Engine token balances held by an account."""
        rows = await self._find(
            "tokens",
            "balances",
            {"account": account},
            limit or settings.token_balance_limit
        )
        
        balances = []
        for row in rows or []:
            try:
                balances.append(TokenBalance(**row))
            except (TypeError, ValueError) as e:
                logger.warning("Failed to parse token balance", extra={
                    "provider": self.name,
                    "account": account,
                    "row": row,
                    "error": str(e)
                })
                continue
        
        logger.info("Retrieved token balances", extra={
            "provider": self.name,
            "account": account,
            "count": len(balances)
        })
        return balances
