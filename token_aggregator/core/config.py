"""
Configuration management for Token Price Aggregator Service.
Uses pydantic-settings for environment variable management.
"""

from typing import List
from pydantic import Field, validator
from pydantic_settings import BaseSettings

from ..api.schemas import RetryPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application metadata
    app_name: str = Field(default="Token Price Aggregator", env="APP_NAME")
    app_version: str = Field(default="1.0.0", env="APP_VERSION")
    debug: bool = Field(default=False, env="DEBUG")
    
    # Server configuration
    server_host: str = Field(default="0.0.0.0", env="SERVER_HOST")
    port: int = Field(default=3000, env="PORT")
    cors_origins: str = Field(default="*", env="CORS_ORIGINS")
    
    # Remote endpoints
    hive_api_url: str = Field(default="https://api.hive.blog", env="HIVE_API_URL")
    hive_engine_rpc_url: str = Field(
        default="https://api.hive-engine.com/rpc/contracts",
        env="HIVE_ENGINE_RPC_URL"
    )
    coingecko_api_url: str = Field(default="https://api.coingecko.com/api/v3", env="COINGECKO_API_URL")
    
    # Per-attempt deadline for a single remote lookup (seconds)
    request_timeout: float = Field(default=10.0, env="REQUEST_TIMEOUT")
    
    # Price batch policy
    price_concurrency: int = Field(default=5, env="PRICE_CONCURRENCY")
    price_max_attempts: int = Field(default=8, env="PRICE_MAX_ATTEMPTS")  # 7 retries
    price_initial_delay: float = Field(default=0.5, env="PRICE_INITIAL_DELAY")  # seconds
    price_backoff_multiplier: float = Field(default=2.0, env="PRICE_BACKOFF_MULTIPLIER")
    
    # Token priced from the reference HIVE/USD rate instead of Hive-Engine
    override_symbol: str = Field(default="SWAP.HIVE", env="OVERRIDE_SYMBOL")
    token_balance_limit: int = Field(default=1000, env="TOKEN_BALANCE_LIMIT")
    
    # Logging configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")
    
    @validator('log_level')
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()
    
    @validator('log_format')
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {'json', 'text'}
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {', '.join(valid_formats)}")
        return v.lower()
    
    @validator('price_concurrency', 'price_max_attempts')
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v
    
    @validator('price_backoff_multiplier')
    def validate_multiplier(cls, v: float) -> float:
        if v <= 1:
            raise ValueError("price_backoff_multiplier must be greater than 1")
        return v
    
    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(',') if origin.strip()]
    
    def get_retry_policy(self) -> RetryPolicy:
        """Build the retry policy applied to every price lookup in a batch."""
        return RetryPolicy(
            max_attempts=self.price_max_attempts,
            initial_delay=self.price_initial_delay,
            multiplier=self.price_backoff_multiplier
        )
    
    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
