"""
Result aggregator for Token Price Aggregator.
Sole owner of a batch's price map and failure set.
"""

from typing import AsyncIterable, Dict, Optional, Set, Tuple

from ..api.schemas import FailureReason, PriceAggregate, TaskOutcome
from ..core.logging_config import create_logger
from .scheduler import SettledTask

logger = create_logger(__name__)


class ResultAggregator:
    """Collects settled outcomes into a PriceAggregate.
    
    Outcomes reach the aggregator through one consuming loop (``consume``), so
    the underlying mapping has a single writer.
    
    When the same key settles more than once, the kept outcome does not depend
    on arrival order: a success beats an exhausted outcome, and between two of
    the same kind the one submitted first wins.
    """
    
    def __init__(self):
        self._values: Dict[str, float] = {}
        self._failed: Set[str] = set()
        self._reasons: Dict[str, FailureReason] = {}
        self._ranks: Dict[str, Tuple[int, int]] = {}
        self._result: Optional[PriceAggregate] = None
    
    @property
    def is_complete(self) -> bool:
        return self._result is not None
    
    def __len__(self) -> int:
        return len(self._values)
    
    @staticmethod
    def _rank(outcome: TaskOutcome, position: int) -> Tuple[int, int]:
        # Lower ranks win
        return (0 if outcome.is_success else 1, position)
    
    def apply(self, key: str, outcome: TaskOutcome, position: int = 0) -> None:
        """Record one settled outcome submitted at ``position`` in the batch."""
        if self._result is not None:
            raise RuntimeError("Aggregate is complete and read-only")
        
        rank = self._rank(outcome, position)
        if key in self._ranks:
            if rank >= self._ranks[key]:
                logger.debug("Duplicate outcome for key discarded", extra={
                    "key": key,
                    "status": outcome.status.value,
                    "position": position
                })
                return
            logger.debug("Duplicate outcome for key supersedes earlier one", extra={
                "key": key,
                "status": outcome.status.value,
                "position": position
            })
        
        self._ranks[key] = rank
        self._values[key] = outcome.value
        if outcome.is_success:
            self._failed.discard(key)
            self._reasons.pop(key, None)
        else:
            self._failed.add(key)
            if outcome.reason is not None:
                self._reasons[key] = outcome.reason
            else:
                self._reasons.pop(key, None)
    
    def finalize(self) -> PriceAggregate:
        """Close the aggregate to further writes and return it."""
        if self._result is None:
            self._result = PriceAggregate(
                values=dict(self._values),
                failed_keys=frozenset(self._failed),
                failure_reasons=dict(self._reasons)
            )
        return self._result
    
    async def consume(self, outcomes: AsyncIterable[SettledTask]) -> PriceAggregate:
        """Apply every outcome from a stream, then finalize."""
        async for key, outcome, position in outcomes:
            self.apply(key, outcome, position)
        return self.finalize()
