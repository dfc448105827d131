"""
Price aggregation service for Token Price Aggregator.
Drives a batch of token price lookups to completion with bounded concurrency,
per-key retry and partial-failure tolerance.
"""

import asyncio
import math
import time
from typing import List, Optional, Sequence, Tuple

from ..api.schemas import OverrideEntry, PriceAggregate, RetryPolicy, TaskOutcome
from ..core.logging_config import create_logger
from .aggregator import ResultAggregator
from .retry import Delay, Lookup, RetryingFetcher
from .scheduler import BoundedScheduler, TaskFn

logger = create_logger(__name__)


class OverrideUnavailableError(Exception):
    """Raised when the caller cannot supply the override value for a batch."""
    
    def __init__(self, message: str, key: Optional[str] = None):
        self.message = message
        self.key = key
        super().__init__(self.message)


class PriceOrchestrator:
    """Prices a list of keys against one remote lookup.
    
    Per-key failures never abort the batch: a key that cannot be priced is
    reported at the sentinel price and listed in ``failed_keys``. The only
    batch-level failure is a missing override value.
    """
    
    def __init__(
        self,
        lookup: Lookup,
        delay: Delay = asyncio.sleep,
        attempt_timeout: Optional[float] = None
    ):
        self._lookup = lookup
        self._delay = delay
        self.attempt_timeout = attempt_timeout
    
    def _build_tasks(
        self,
        keys: Sequence[str],
        override: Optional[OverrideEntry],
        fetcher: RetryingFetcher
    ) -> List[Tuple[str, TaskFn]]:
        tasks = []
        for key in keys:
            if override is not None and key == override.key:
                tasks.append((key, self._override_task(override.value)))
            else:
                tasks.append((key, self._fetch_task(fetcher, key)))
        return tasks
    
    @staticmethod
    def _override_task(value: float) -> TaskFn:
        async def run() -> TaskOutcome:
            return TaskOutcome.success(value, attempts=0)
        return run
    
    @staticmethod
    def _fetch_task(fetcher: RetryingFetcher, key: str) -> TaskFn:
        async def run() -> TaskOutcome:
            return await fetcher.fetch(key)
        return run
    
    async def aggregate(
        self,
        keys: Sequence[str],
        override: Optional[OverrideEntry] = None,
        concurrency: int = 5,
        policy: Optional[RetryPolicy] = None
    ) -> PriceAggregate:
        """
        Price every key and return the completed aggregate.
        
        Args:
            keys: Keys to price; duplicates run as independent tasks
            override: Key whose value is supplied directly and never looked up
            concurrency: Maximum number of lookups in flight at once
            policy: Retry policy applied to each lookup
            
        Returns:
            PriceAggregate with one value per distinct key
            
        Raises:
            OverrideUnavailableError: If an override is given without a usable value
            ValueError: If concurrency is less than 1
        """
        if override is not None and (override.value is None or not math.isfinite(override.value)):
            logger.error("Override value unavailable, aborting batch", extra={
                "override_key": override.key,
                "keys": len(keys)
            })
            raise OverrideUnavailableError(f"No value available for override key {override.key}", override.key)
        
        policy = policy or RetryPolicy()
        scheduler = BoundedScheduler(concurrency)
        fetcher = RetryingFetcher(
            self._lookup,
            policy,
            delay=self._delay,
            attempt_timeout=self.attempt_timeout
        )
        
        start_time = time.monotonic()
        logger.info("Price batch started", extra={
            "keys": len(keys),
            "concurrency": concurrency,
            "max_attempts": policy.max_attempts,
            "override_key": override.key if override else None
        })
        
        aggregator = ResultAggregator()
        result = await aggregator.consume(scheduler.run(self._build_tasks(keys, override, fetcher)))
        
        logger.info("Price batch completed", extra={
            "keys": len(keys),
            "priced": len(result.values) - len(result.failed_keys),
            "failed": len(result.failed_keys),
            "peak_in_flight": scheduler.peak_in_flight,
            "duration_seconds": round(time.monotonic() - start_time, 4)
        })
        
        return result
