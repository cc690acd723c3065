"""
Tests for async_utils module.

Covers run_sync, run_sync_limited, and init_semaphore.
"""

import asyncio
import threading

import replica_sync.core.async_utils as mod
from replica_sync.core.async_utils import (
    init_semaphore,
    run_sync,
    run_sync_limited,
)


def _sync_add(a: int, b: int) -> int:
    return a + b


async def test_run_sync_calls_function():
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_runs_off_the_event_loop_thread():
    loop_thread = threading.get_ident()

    worker_thread = await run_sync(threading.get_ident)

    assert worker_thread != loop_thread


async def test_run_sync_passes_kwargs():
    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


async def test_run_sync_limited_without_semaphore():
    saved = mod._semaphore
    try:
        mod._semaphore = None
        assert await run_sync_limited(_sync_add, 1, 2) == 3
    finally:
        mod._semaphore = saved


async def test_run_sync_limited_bounds_concurrency():
    saved = mod._semaphore
    active = 0
    peak = 0
    lock = threading.Lock()

    def _work():
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        threading.Event().wait(0.05)
        with lock:
            active -= 1

    try:
        init_semaphore(2)
        await asyncio.gather(*(run_sync_limited(_work) for _ in range(6)))
    finally:
        mod._semaphore = saved

    assert peak <= 2
