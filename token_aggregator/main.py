"""
Main FastAPI application for Token Price Aggregator Service.
Includes lifespan management for provider connections.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import time

from token_aggregator.core.config import settings
from token_aggregator.core.logging_config import setup_logging, create_logger
from token_aggregator.api.endpoints import router as api_router, error_response
from token_aggregator.services.account_service import account_service

# Setup logging first
setup_logging()
logger = create_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Opens provider connections on startup and closes them on shutdown.
    """
    logger.info("Starting Token Price Aggregator Service", extra={
        "version": settings.app_version,
        "debug": settings.debug
    })
    
    try:
        await account_service.initialize()
        logger.info("Token Price Aggregator Service started successfully", extra={
            "port": settings.port
        })
    except Exception as e:
        logger.error("Failed to start Token Price Aggregator Service", extra={
            "error": str(e)
        })
        raise
    
    yield  # Application is running
    
    logger.info("Shutting down Token Price Aggregator Service")
    await account_service.shutdown()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Bounded-concurrency token pricing service with retry and partial-failure tolerance",
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests and responses."""
    start_time = time.time()
    
    logger.info("Request received", extra={
        "method": request.method,
        "url": str(request.url),
        "client_ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent")
    })
    
    try:
        response = await call_next(request)
        
        process_time = time.time() - start_time
        
        logger.info("Request completed", extra={
            "method": request.method,
            "url": str(request.url),
            "status_code": response.status_code,
            "process_time": round(process_time, 4),
            "client_ip": request.client.host if request.client else None
        })
        
        response.headers["X-Process-Time"] = str(process_time)
        
        return response
        
    except Exception as e:
        process_time = time.time() - start_time
        
        logger.error("Request failed", extra={
            "method": request.method,
            "url": str(request.url),
            "error": str(e),
            "process_time": round(process_time, 4),
            "client_ip": request.client.host if request.client else None
        })
        
        return error_response(500, "Internal server error", "INTERNAL_ERROR")


# Exception handlers
@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    """Handle 404 errors with structured response."""
    return error_response(404, "Endpoint not found", "NOT_FOUND", {
        "path": request.url.path,
        "method": request.method
    })


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    """Handle 500 errors with structured response."""
    logger.error("Internal server error", extra={
        "path": request.url.path,
        "method": request.method,
        "error": str(exc)
    })
    
    return error_response(500, "Internal server error", "INTERNAL_ERROR")


# Include API routes
app.include_router(api_router, tags=["Token Price API"])


# Root endpoint
@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint with service information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs_url": "/docs" if settings.debug else "disabled",
        "timestamp": datetime.utcnow()
    }


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "token_aggregator.main:app",
        host=settings.server_host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True
    )
