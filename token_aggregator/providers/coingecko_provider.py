"""
CoinGecko data provider implementation.
Provides the HIVE/USD reference rate using the CoinGecko API.
"""

from typing import Optional
import httpx

from .base import BaseDataProvider, DataNotFoundError
from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)


class CoinGeckoProvider(BaseDataProvider):
    """CoinGecko data provider for cryptocurrency reference prices."""
    
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(
            name="coingecko",
            base_url=base_url or settings.coingecko_api_url,
            timeout=timeout,
            transport=transport
        )
    
    async def get_usd_price(self, coin_id: str) -> float:
        """Get the USD price of a coin by its CoinGecko ID."""
        price_data = await self._make_request(
            method="GET",
            url=f"{self.base_url}/simple/price",
            params={
                'ids': coin_id,
                'vs_currencies': 'usd'
            },
            symbol=coin_id
        )
        
        data = price_data.get(coin_id) if isinstance(price_data, dict) else None
        if not data or data.get('usd') is None:
            raise DataNotFoundError(f"No USD price for {coin_id}", self.name, coin_id)
        
        price = float(data['usd'])
        logger.info("Retrieved price from CoinGecko", extra={
            "provider": self.name,
            "coin_id": coin_id,
            "price": price
        })
        return price
    
    async def get_hive_usd_price(self) -> float:
        """Get the HIVE/USD reference rate."""
        return await self.get_usd_price("hive")
