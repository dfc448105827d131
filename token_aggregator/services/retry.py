"""
Retrying fetcher for Token Price Aggregator.
Wraps a single remote lookup with exponential backoff and turns every
failure into a settled TaskOutcome.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from ..api.schemas import FailureReason, RetryPolicy, TaskOutcome
from ..core.logging_config import create_logger
from ..providers.base import DataNotFoundError, TransientLookupError

logger = create_logger(__name__)

Lookup = Callable[[str], Awaitable[float]]
Delay = Callable[[float], Awaitable[None]]


class RetryingFetcher:
    """Fetch one key's value, retrying transient failures per a RetryPolicy.
    
    ``fetch`` never raises for lookup failures: a conclusive empty result and
    an exhausted retry budget both settle as an Exhausted outcome carrying the
    sentinel price. Exceptions other than ``TransientLookupError`` and
    ``DataNotFoundError`` are not the fetcher's to interpret and propagate.
    """
    
    def __init__(
        self,
        lookup: Lookup,
        policy: RetryPolicy,
        delay: Delay = asyncio.sleep,
        attempt_timeout: Optional[float] = None
    ):
        self._lookup = lookup
        self._delay = delay
        self.policy = policy
        self.attempt_timeout = attempt_timeout
    
    async def _attempt(self, key: str) -> float:
        if self.attempt_timeout is None:
            return await self._lookup(key)
        
        try:
            return await asyncio.wait_for(self._lookup(key), timeout=self.attempt_timeout)
        except asyncio.TimeoutError as e:
            raise TransientLookupError(
                f"Lookup timed out after {self.attempt_timeout}s",
                "fetcher",
                key
            ) from e
    
    async def fetch(self, key: str) -> TaskOutcome:
        """Look up ``key`` until it succeeds, has no data, or runs out of attempts."""
        max_attempts = self.policy.max_attempts
        
        for attempt in range(max_attempts):
            try:
                logger.debug("Fetching value", extra={
                    "key": key,
                    "attempt": attempt + 1
                })
                
                value = await self._attempt(key)
                
            except DataNotFoundError as e:
                logger.info("No data found", extra={
                    "key": key,
                    "attempt": attempt + 1,
                    "error": str(e)
                })
                return TaskOutcome.exhausted(FailureReason.NO_DATA, attempts=attempt + 1)
            
            except TransientLookupError as e:
                if attempt < max_attempts - 1:
                    backoff = self.policy.delay_for(attempt)
                    logger.warning("Lookup failed, retrying", extra={
                        "key": key,
                        "attempt": attempt + 1,
                        "retries_left": max_attempts - attempt - 1,
                        "backoff": backoff,
                        "error": str(e)
                    })
                    await self._delay(backoff)
                    continue
                
                logger.error("All retries failed, assigning sentinel price", extra={
                    "key": key,
                    "attempts": max_attempts,
                    "error": str(e)
                })
                return TaskOutcome.exhausted(FailureReason.RETRIES_EXHAUSTED, attempts=max_attempts)
            
            logger.debug("Fetched value", extra={
                "key": key,
                "value": value,
                "attempt": attempt + 1
            })
            return TaskOutcome.success(value, attempts=attempt + 1)
        
        return TaskOutcome.exhausted(FailureReason.RETRIES_EXHAUSTED, attempts=max_attempts)
