"""
Base class for remote data providers in Token Price Aggregator.
Owns the HTTP client and maps transport failures onto the provider error taxonomy.
"""

from typing import Any, Dict, Optional
import httpx

from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)


class ProviderError(Exception):
    """Base exception for provider errors."""
    
    def __init__(self, message: str, provider: str, symbol: Optional[str] = None):
        self.message = message
        self.provider = provider
        self.symbol = symbol
        super().__init__(self.message)


class TransientLookupError(ProviderError):
    """Exception raised when a remote call fails in a way worth retrying."""
    pass


class DataNotFoundError(ProviderError):
    """Exception raised when the remote source conclusively has no data."""
    pass


class AccountNotFoundError(ProviderError):
    """Exception raised when the requested account does not exist."""
    pass


class BaseDataProvider:
    """Base class for JSON-over-HTTP providers.
    
    Every request is a single attempt. Retrying is the caller's concern, so
    anything that might succeed on a second try is raised as
    ``TransientLookupError``.
    """
    
    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.name = name
        self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.client: Optional[httpx.AsyncClient] = None
        self._transport = transport
        self._request_count = 0
    
    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
    
    @property
    def is_connected(self) -> bool:
        return self.client is not None
    
    async def connect(self) -> None:
        """Initialize HTTP client connection."""
        if self.client is None:
            timeout = httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0))
            limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
            
            self.client = httpx.AsyncClient(
                timeout=timeout,
                limits=limits,
                headers=self._get_default_headers(),
                follow_redirects=True,
                transport=self._transport
            )
            
            logger.debug("Connected to provider", extra={"provider": self.name})
    
    async def disconnect(self) -> None:
        """Close HTTP client connection."""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.debug("Disconnected from provider", extra={"provider": self.name})
    
    def _get_default_headers(self) -> Dict[str, str]:
        """Get default HTTP headers for requests."""
        return {
            'User-Agent': 'Token-Price-Aggregator/1.0.0',
            'Accept': 'application/json',
            'Accept-Encoding': 'gzip, deflate',
            'Connection': 'keep-alive'
        }
    
    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
        symbol: Optional[str] = None
    ) -> Any:
        """Make one HTTP request and return the decoded JSON body."""
        
        if not self.client:
            await self.connect()
        
        self._request_count += 1
        
        try:
            logger.debug("Making request to provider", extra={
                "provider": self.name,
                "method": method,
                "url": url,
                "symbol": symbol
            })
            
            response = await self.client.request(
                method=method,
                url=url,
                params=params,
                json=data
            )
            
            if response.status_code == 429:
                raise TransientLookupError(f"Rate limited by {self.name}", self.name, symbol)
            
            response.raise_for_status()
            
        except httpx.TimeoutException as e:
            logger.warning("Request timeout", extra={
                "provider": self.name,
                "url": url,
                "symbol": symbol
            })
            raise TransientLookupError(f"Request timeout for {self.name}", self.name, symbol) from e
        
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("HTTP status error", extra={
                "provider": self.name,
                "url": url,
                "symbol": symbol,
                "status_code": status
            })
            if status >= 500:
                raise TransientLookupError(f"Server error {status} from {self.name}", self.name, symbol) from e
            # Other 4xx responses will not change on retry
            raise ProviderError(f"Client error {status} from {self.name}", self.name, symbol) from e
        
        except httpx.HTTPError as e:
            logger.warning("HTTP error", extra={
                "provider": self.name,
                "url": url,
                "symbol": symbol,
                "error": str(e)
            })
            raise TransientLookupError(f"HTTP error for {self.name}: {str(e)}", self.name, symbol) from e
        
        try:
            return response.json()
        except ValueError as e:
            raise TransientLookupError(
                f"Invalid JSON response from {self.name}: {str(e)}",
                self.name,
                symbol
            ) from e
    
    async def _rpc_call(
        self,
        url: str,
        method: str,
        params: Any,
        symbol: Optional[str] = None
    ) -> Any:
        """Perform a JSON-RPC 2.0 call and return its ``result`` member."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": 1
        }
        body = await self._make_request("POST", url, data=payload, symbol=symbol)
        
        if not isinstance(body, dict):
            raise TransientLookupError(f"Malformed JSON-RPC response from {self.name}", self.name, symbol)
        
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise TransientLookupError(f"JSON-RPC error from {self.name}: {message}", self.name, symbol)
        
        return body.get("result")
    
    async def health_check(self) -> bool:
        """A provider is healthy once its HTTP client is open."""
        return self.is_connected
