"""
Hive blockchain data provider implementation.
Provides account records and chain-wide properties via the condenser API.
"""

from typing import Any, Dict, Optional
import httpx

from .base import AccountNotFoundError, BaseDataProvider, TransientLookupError
from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)


class HiveProvider(BaseDataProvider):
    """Hive API node provider."""
    
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(
            name="hive",
            base_url=base_url or settings.hive_api_url,
            timeout=timeout,
            transport=transport
        )
    
    async def get_account(self, username: str) -> Dict[str, Any]:
        """Get the account record for a username."""
        accounts = await self._rpc_call(self.base_url, "condenser_api.get_accounts", [[username]])
        
        if not accounts:
            raise AccountNotFoundError(f"Account not found: {username}", self.name)
        
        logger.debug("Fetched account", extra={"provider": self.name, "account": username})
        return accounts[0]
    
    async def get_dynamic_global_properties(self) -> Dict[str, Any]:
        """Get chain-wide properties used to convert vesting shares into HIVE."""
        properties = await self._rpc_call(self.base_url, "condenser_api.get_dynamic_global_properties", [])
        
        if not isinstance(properties, dict):
            raise TransientLookupError("Missing dynamic global properties", self.name)
        
        return properties
