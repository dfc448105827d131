"""Tests for BoundedScheduler: concurrency bound, FIFO admission and failure isolation."""

from __future__ import annotations

import asyncio

import pytest

pytestmark = pytest.mark.unit

from token_aggregator.api.schemas import FailureReason, OutcomeStatus, TaskOutcome
from token_aggregator.services.scheduler import BoundedScheduler


def _task(value: float, latency: float = 0.0, log: list | None = None, key: str = ""):
    async def run() -> TaskOutcome:
        if log is not None:
            log.append(key)
        await asyncio.sleep(latency)
        return TaskOutcome.success(value)
    return run


async def _collect(scheduler: BoundedScheduler, tasks) -> list:
    return [item async for item in scheduler.run(tasks)]


def test_rejects_non_positive_concurrency():
    with pytest.raises(ValueError):
        BoundedScheduler(0)


@pytest.mark.asyncio
async def test_at_most_k_tasks_in_flight():
    in_flight = 0
    peak = 0

    async def tracked() -> TaskOutcome:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return TaskOutcome.success(1.0)

    scheduler = BoundedScheduler(5)
    settled = await _collect(scheduler, [(f"K{i}", tracked) for i in range(20)])

    assert len(settled) == 20
    assert peak == 5
    assert scheduler.peak_in_flight <= 5
    assert scheduler.in_flight == 0


@pytest.mark.asyncio
async def test_admission_is_fifo():
    started: list[str] = []
    keys = [f"K{i}" for i in range(6)]
    tasks = [(key, _task(1.0, 0.001, started, key)) for key in keys]

    await _collect(BoundedScheduler(1), tasks)

    assert started == keys


@pytest.mark.asyncio
async def test_raising_task_is_isolated():
    async def broken() -> TaskOutcome:
        raise RuntimeError("task blew up")

    tasks = [("A", _task(1.0, 0.01)), ("BAD", broken), ("C", _task(3.0, 0.01))]

    settled = {item.key: item.outcome for item in await _collect(BoundedScheduler(2), tasks)}

    assert settled["A"].value == 1.0
    assert settled["C"].value == 3.0
    assert settled["BAD"].status == OutcomeStatus.EXHAUSTED
    assert settled["BAD"].reason == FailureReason.TASK_ERROR
    assert settled["BAD"].value == 0


@pytest.mark.asyncio
async def test_empty_task_list_completes_immediately():
    assert await _collect(BoundedScheduler(3), []) == []


@pytest.mark.asyncio
async def test_outcomes_stream_in_completion_order():
    tasks = [("SLOW", _task(1.0, 0.05)), ("FAST", _task(2.0, 0.0))]

    settled = await _collect(BoundedScheduler(2), tasks)

    assert [item.key for item in settled] == ["FAST", "SLOW"]
    assert [item.position for item in settled] == [1, 0]


@pytest.mark.asyncio
async def test_duplicate_keys_run_as_independent_tasks():
    runs: list[str] = []
    tasks = [("A", _task(1.0, 0.0, runs, "A")), ("A", _task(1.0, 0.0, runs, "A"))]

    settled = await _collect(BoundedScheduler(2), tasks)

    assert runs == ["A", "A"]
    assert len(settled) == 2


@pytest.mark.asyncio
async def test_settled_tasks_carry_submission_position():
    tasks = [("A", _task(1.0)), ("A", _task(2.0)), ("B", _task(3.0))]

    settled = await _collect(BoundedScheduler(3), tasks)

    assert sorted((item.position, item.key, item.outcome.value) for item in settled) == [
        (0, "A", 1.0),
        (1, "A", 2.0),
        (2, "B", 3.0),
    ]


@pytest.mark.asyncio
async def test_cancellation_raised_by_a_task_is_isolated():
    async def cancelled() -> TaskOutcome:
        raise asyncio.CancelledError()

    tasks = [("A", _task(1.0, 0.01)), ("GONE", cancelled), ("C", _task(3.0, 0.01))]

    settled = {item.key: item.outcome for item in await _collect(BoundedScheduler(1), tasks)}

    assert settled["A"].value == 1.0
    assert settled["C"].value == 3.0
    assert settled["GONE"].status == OutcomeStatus.EXHAUSTED
    assert settled["GONE"].reason == FailureReason.TASK_ERROR


@pytest.mark.asyncio
async def test_closing_the_stream_early_stops_workers():
    scheduler = BoundedScheduler(2)
    stream = scheduler.run([(f"K{i}", _task(1.0, 0.05)) for i in range(6)])

    first = await stream.__anext__()
    await stream.aclose()

    assert first.outcome.value == 1.0
    assert scheduler.in_flight == 0
