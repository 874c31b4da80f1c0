"""Session Locks + Oracle Gateway — tests for per-user exclusion and caller-imposed timeouts.

Tests cover:
    - Concurrent hold() for the same user raises ConcurrencyError
    - Different users never contend; the key is released after exceptions
    - generate_with_timeout / embed_with_timeout report timeouts as OracleUnavailableError
"""

import asyncio

import pytest

from goodfaith.core.errors import ConcurrencyError, OracleUnavailableError
from goodfaith.infrastructure.session_locks import SessionLockRegistry
from goodfaith.services.oracle_gateway import embed_with_timeout, generate_with_timeout

from tests.services.fakes import FakeEmbedder, FakeOracle, unavailable


async def test_second_hold_for_same_user_rejected():
    locks = SessionLockRegistry()
    async with locks.hold("alice", "submit_answer"):
        assert locks.is_locked("alice")
        with pytest.raises(ConcurrencyError) as exc:
            async with locks.hold("alice", "submit_answer"):
                pass
        assert exc.value.code == "CONCURRENCY_CONFLICT"
        async with locks.hold("bob"):
            assert locks.is_locked("bob")
    assert not locks.is_locked("alice")


async def test_lock_released_after_exception():
    locks = SessionLockRegistry()
    with pytest.raises(RuntimeError):
        async with locks.hold("alice"):
            raise RuntimeError("boom")
    assert not locks.is_locked("alice")


async def test_overlapping_tasks_one_rejected():
    locks = SessionLockRegistry()
    started = asyncio.Event()

    async def slow():
        async with locks.hold("alice"):
            started.set()
            await asyncio.sleep(0.05)
            return "done"

    async def fast():
        await started.wait()
        async with locks.hold("alice"):
            return "never"

    results = await asyncio.gather(slow(), fast(), return_exceptions=True)
    assert results[0] == "done"
    assert isinstance(results[1], ConcurrencyError)


async def test_generate_timeout_maps_to_oracle_error():
    oracle = FakeOracle("late")
    oracle.delay_seconds = 0.5
    with pytest.raises(OracleUnavailableError) as exc:
        await generate_with_timeout(
            oracle, model="m", prompt="p", temperature=0.3, max_tokens=10,
            timeout_seconds=0.01,
        )
    assert exc.value.reason == "timeout"
    assert exc.value.oracle == "inference"


async def test_oracle_error_passes_through():
    with pytest.raises(OracleUnavailableError) as exc:
        await generate_with_timeout(
            FakeOracle(unavailable("http_error")), model="m", prompt="p",
            temperature=0.3, max_tokens=10, timeout_seconds=1,
        )
    assert exc.value.reason == "http_error"


async def test_embed_within_timeout():
    vector = await embed_with_timeout(FakeEmbedder(), "Never lie", timeout_seconds=1)
    assert vector[1] == 1.0
