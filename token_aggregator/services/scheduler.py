"""
Bounded concurrency scheduler for Token Price Aggregator.
Runs independent price tasks on a fixed-size pool of workers and streams
each settled outcome back to a single consumer.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, NamedTuple, Sequence, Tuple

from ..api.schemas import FailureReason, TaskOutcome
from ..core.logging_config import create_logger

logger = create_logger(__name__)

TaskFn = Callable[[], Awaitable[TaskOutcome]]


class SettledTask(NamedTuple):
    """A task's outcome together with its position in the submitted sequence."""
    key: str
    outcome: TaskOutcome
    position: int


class BoundedScheduler:
    """Run at most ``concurrency`` tasks at a time, admitting them in FIFO order.
    
    Workers pull tasks from a shared queue, so a new task only starts when a
    worker frees up. A task that raises settles as an Exhausted outcome for its
    key; siblings keep running.
    """
    
    def __init__(self, concurrency: int):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.in_flight = 0
        self.peak_in_flight = 0
    
    def _task_failed(self, key: str, worker_id: int, error: BaseException) -> TaskOutcome:
        logger.error("Price task failed", extra={
            "key": key,
            "worker": worker_id,
            "error": repr(error)
        })
        return TaskOutcome.exhausted(FailureReason.TASK_ERROR)
    
    async def _worker(
        self,
        worker_id: int,
        pending: "asyncio.Queue[Tuple[int, str, TaskFn]]",
        settled: "asyncio.Queue[SettledTask]",
        stopping: asyncio.Event
    ) -> None:
        while True:
            try:
                position, key, task = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                outcome = await task()
            except asyncio.CancelledError as e:
                # Cancellation of the worker itself must propagate
                if stopping.is_set():
                    raise
                outcome = self._task_failed(key, worker_id, e)
            except Exception as e:
                outcome = self._task_failed(key, worker_id, e)
            finally:
                self.in_flight -= 1
            
            await settled.put(SettledTask(key, outcome, position))
    
    async def run(self, tasks: Sequence[Tuple[str, TaskFn]]) -> AsyncIterator[SettledTask]:
        """Yield settled tasks in completion order until every task settles."""
        pending: "asyncio.Queue[Tuple[int, str, TaskFn]]" = asyncio.Queue()
        for position, (key, task) in enumerate(tasks):
            pending.put_nowait((position, key, task))
        
        total = pending.qsize()
        if total == 0:
            return
        
        settled: "asyncio.Queue[SettledTask]" = asyncio.Queue()
        stopping = asyncio.Event()
        workers = [
            asyncio.create_task(self._worker(i, pending, settled, stopping))
            for i in range(min(self.concurrency, total))
        ]
        
        logger.debug("Scheduler started", extra={
            "tasks": total,
            "workers": len(workers)
        })
        
        try:
            for _ in range(total):
                yield await settled.get()
        finally:
            # Only reached with live workers if the consumer stopped early
            stopping.set()
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
