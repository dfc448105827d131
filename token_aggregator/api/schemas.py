"""
Pydantic schemas for Token Price Aggregator Service.
Core batch types shared by the pricing services plus the HTTP response models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from pydantic import BaseModel, Field, validator


class OutcomeStatus(str, Enum):
    """Terminal state of a single price task."""
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


class FailureReason(str, Enum):
    """Why a task ended without real price data."""
    NO_DATA = "no_data"
    RETRIES_EXHAUSTED = "retries_exhausted"
    TASK_ERROR = "task_error"


# Price reported for a key whose data could not be determined
SENTINEL_PRICE = 0.0


class RetryPolicy(BaseModel):
    """Exponential backoff policy, fixed for the lifetime of a batch."""
    max_attempts: int = Field(8, ge=1, description="Total lookup attempts, including the first")
    initial_delay: float = Field(0.5, ge=0, description="Delay before the first retry")
    multiplier: float = Field(2.0, gt=1, description="Growth factor applied to each further delay")
    
    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given zero-based failed attempt."""
        return self.initial_delay * self.multiplier ** attempt
    
    class Config:
        """Pydantic configuration."""
        frozen = True


class TaskOutcome(BaseModel):
    """Settled result of one price task.
    
    Success carries the looked-up value. Exhausted always carries the sentinel
    price together with the reason the lookup gave up.
    """
    status: OutcomeStatus
    value: float = SENTINEL_PRICE
    reason: Optional[FailureReason] = None
    attempts: int = 0
    
    @classmethod
    def success(cls, value: float, attempts: int = 1) -> "TaskOutcome":
        return cls(status=OutcomeStatus.SUCCESS, value=value, attempts=attempts)
    
    @classmethod
    def exhausted(cls, reason: FailureReason, attempts: int = 0) -> "TaskOutcome":
        return cls(status=OutcomeStatus.EXHAUSTED, value=SENTINEL_PRICE, reason=reason, attempts=attempts)
    
    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS
    
    class Config:
        """Pydantic configuration."""
        frozen = True


class OverrideEntry(BaseModel):
    """A key priced directly by the caller instead of through a lookup.
    
    A ``None`` value means the caller could not obtain the reference price.
    """
    key: str
    value: Optional[float] = None
    
    class Config:
        """Pydantic configuration."""
        frozen = True


class PriceAggregate(BaseModel):
    """Final, read-only output of a pricing batch."""
    values: Dict[str, float] = Field(default_factory=dict, description="Price per submitted key")
    failed_keys: FrozenSet[str] = Field(default_factory=frozenset, description="Keys without real price data")
    failure_reasons: Dict[str, FailureReason] = Field(default_factory=dict, description="Why each failed key failed")
    
    class Config:
        """Pydantic configuration."""
        frozen = True


class TokenBalance(BaseModel):
    """Hive-Engine token balance row for an account."""
    account: str
    symbol: str
    balance: str = "0"
    stake: str = "0"
    pendingUnstake: str = "0"
    delegationsIn: str = "0"
    delegationsOut: str = "0"
    pendingUndelegations: str = "0"
    
    @validator('symbol')
    def validate_symbol(cls, v: str) -> str:
        """Validate and normalize symbol."""
        if not v or not v.strip():
            raise ValueError("Symbol cannot be empty")
        return v.strip().upper()
    
    class Config:
        """Pydantic configuration."""
        extra = "allow"


class AccountTokensResponse(BaseModel):
    """Valuation of a Hive account and its Hive-Engine tokens."""
    account: str = Field(..., description="Hive account name")
    balance: float = Field(..., description="Liquid HIVE balance")
    savings_balance: float = Field(..., description="HIVE held in savings")
    hbd_balance: float = Field(..., description="Liquid HBD balance")
    savings_hbd_balance: float = Field(..., description="HBD held in savings")
    hive_power: float = Field(..., description="Vesting shares expressed in HIVE")
    hive_price: float = Field(..., description="HIVE price in USD")
    tokens_data: Dict[str, float] = Field(default_factory=dict, description="Price per held token symbol")
    failed_tokens: List[str] = Field(default_factory=list, description="Symbols without real price data")
    other_tokens: List[TokenBalance] = Field(default_factory=list, description="Raw Hive-Engine balances")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Valuation timestamp")


class TokenPriceResponse(BaseModel):
    """Price lookup result for a single Hive-Engine token."""
    token: str = Field(..., description="Token symbol")
    price: float = Field(..., description="Last traded price in HIVE")
    found: bool = Field(..., description="Whether real price data was found")
    reason: Optional[FailureReason] = Field(None, description="Why no price was found")
    attempts: int = Field(0, description="Lookup attempts used")


class HealthResponse(BaseModel):
    """Model for health check response."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")
    version: str = Field(..., description="Service version")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")
    providers: Dict[str, bool] = Field(default_factory=dict, description="Provider connection status")


class ErrorResponse(BaseModel):
    """Model for error responses."""
    error: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Error code")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
