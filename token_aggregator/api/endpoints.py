"""
FastAPI endpoints for Token Price Aggregator Service.
Translates HTTP requests into account valuations and token price lookups.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from fastapi import APIRouter, Path
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..api.schemas import AccountTokensResponse, ErrorResponse, HealthResponse, TokenPriceResponse
from ..core.config import settings
from ..core.logging_config import create_logger
from ..providers.base import AccountNotFoundError
from ..services.account_service import account_service
from ..services.price_aggregator import OverrideUnavailableError

logger = create_logger(__name__)

# Create API router
router = APIRouter()

# Application startup time for uptime calculation
app_start_time = datetime.utcnow()


def error_response(
    status_code: int,
    error: str,
    error_code: str,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """Build a structured error response."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ErrorResponse(error=error, error_code=error_code, details=details))
    )


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.
    Returns service status and the connection state of each remote provider.
    """
    providers = await account_service.get_provider_status()
    uptime_seconds = (datetime.utcnow() - app_start_time).total_seconds()
    
    return HealthResponse(
        status="healthy" if all(providers.values()) else "unhealthy",
        version=settings.app_version,
        uptime_seconds=uptime_seconds,
        providers=providers
    )


@router.get(
    "/tokens/price/{symbol}",
    response_model=TokenPriceResponse,
    responses={500: {"model": ErrorResponse}}
)
async def get_token_price(symbol: str = Path(..., min_length=1, description="Hive-Engine token symbol")):
    """
    Get the last traded price of a single Hive-Engine token.
    
    A token without market data is reported with price 0 and ``found`` false.
    """
    try:
        logger.info("Token price request received", extra={"symbol": symbol})
        return await account_service.get_token_price(symbol)
        
    except Exception as e:
        logger.error("Failed to fetch token price", extra={
            "symbol": symbol,
            "error": str(e)
        })
        return error_response(500, "Error processing request", "INTERNAL_ERROR", {"message": str(e)})


@router.get(
    "/tokens/{username}",
    response_model=AccountTokensResponse,
    responses={
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        500: {"model": ErrorResponse}
    }
)
async def get_account_tokens(username: str = Path(..., min_length=1, description="Hive account name")):
    """
    Value a Hive account and price every Hive-Engine token it holds.
    
    Tokens whose price could not be determined are priced at 0 and listed in
    ``failed_tokens``.
    """
    try:
        logger.info("Account tokens request received", extra={"account": username})
        return await account_service.get_account_tokens(username)
        
    except AccountNotFoundError as e:
        logger.warning("Account lookup returned nothing", extra={
            "account": username,
            "error": e.message
        })
        return error_response(404, e.message, "NOT_FOUND", {"account": username})
    
    except OverrideUnavailableError as e:
        logger.error("Reference price unavailable", extra={
            "account": username,
            "error": e.message
        })
        return error_response(503, "Reference price unavailable", "OVERRIDE_UNAVAILABLE", {"token": e.key})
    
    except Exception as e:
        logger.error("Error processing account request", extra={
            "account": username,
            "error": str(e)
        })
        return error_response(500, "Error processing request", "INTERNAL_ERROR", {"message": str(e)})
