"""Tests for RequestCoalescer."""

from __future__ import annotations

import asyncio

import pytest

from ticketforge.analysis.schemas import Context
from ticketforge.resilience.coalesce import RequestCoalescer

from tests.conftest import make_context


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_computation() -> None:
    """Two concurrent calls with the same key run compute once."""
    coalescer = RequestCoalescer[str]()
    call_count = 0

    async def _slow() -> str:
        nonlocal call_count
        call_count += 1
        await asyncio.sleep(0.05)
        return "result"

    r1, r2 = await asyncio.gather(
        coalescer.run("key", _slow),
        coalescer.run("key", _slow),
    )
    assert r1 == r2 == "result"
    assert call_count == 1
    assert coalescer.coalesced_total == 1


@pytest.mark.asyncio
async def test_independent_keys_run_separately() -> None:
    coalescer = RequestCoalescer[str]()
    call_count = 0

    async def _op() -> str:
        nonlocal call_count
        call_count += 1
        return "ok"

    await asyncio.gather(coalescer.run("a", _op), coalescer.run("b", _op))
    assert call_count == 2


@pytest.mark.asyncio
async def test_error_propagates_to_waiters() -> None:
    coalescer = RequestCoalescer[str]()

    async def _failing() -> str:
        await asyncio.sleep(0.05)
        raise ValueError("boom")

    results = await asyncio.gather(
        coalescer.run("key", _failing),
        coalescer.run("key", _failing),
        return_exceptions=True,
    )
    assert all(isinstance(r, ValueError) for r in results)
    assert not coalescer.is_pending("key")


@pytest.mark.asyncio
async def test_sequential_calls_recompute() -> None:
    """Finished keys are released, so a later call runs again."""
    coalescer = RequestCoalescer[int]()
    counter = 0

    async def _op() -> int:
        nonlocal counter
        counter += 1
        return counter

    assert await coalescer.run("key", _op) == 1
    assert await coalescer.run("key", _op) == 2
    assert coalescer.pending_keys == []


@pytest.mark.asyncio
async def test_cancelled_owner_does_not_cancel_waiters() -> None:
    """The request that started the run is cancelled; its twin still gets the result."""
    coalescer = RequestCoalescer[Context]()
    context = await make_context()
    started = asyncio.Event()
    call_count = 0

    async def _aggregate() -> Context:
        nonlocal call_count
        call_count += 1
        started.set()
        await asyncio.sleep(0.05)
        return context

    owner = asyncio.create_task(coalescer.run("fp", _aggregate))
    await started.wait()
    waiter = asyncio.create_task(coalescer.run("fp", _aggregate))
    await asyncio.sleep(0)
    owner.cancel()

    assert await waiter is context
    with pytest.raises(asyncio.CancelledError):
        await owner
    assert call_count == 1
    assert coalescer.coalesced_total == 1
    assert not coalescer.is_pending("fp")


@pytest.mark.asyncio
async def test_computation_finishes_after_every_caller_leaves() -> None:
    coalescer = RequestCoalescer[str]()
    finished = asyncio.Event()

    async def _op() -> str:
        await asyncio.sleep(0.02)
        finished.set()
        return "done"

    caller = asyncio.create_task(coalescer.run("key", _op))
    await asyncio.sleep(0)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    await asyncio.wait_for(finished.wait(), timeout=1.0)
    await asyncio.sleep(0.01)
    assert coalescer.pending_keys == []
