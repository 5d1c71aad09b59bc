"""Tests for the match concurrency pool."""

from __future__ import annotations

import asyncio
import threading

import pytest

from facematch.config import Settings
from facematch.matching.gallery import EnrolledIdentity
from facematch.matching.pool import MatchPool


def _make_settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "max_concurrent": 2,
        "queue_timeout": 5.0,
        "parallel_probes": False,
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


class TestMatchPool:
    async def test_run_returns_result(self) -> None:
        pool = MatchPool(_make_settings())
        try:
            assert await pool.run(sum, [1, 2, 3]) == 6
            assert pool.active_count == 0
            assert pool.queue_depth == 0
        finally:
            pool.shutdown()

    async def test_match_runs_matcher(self) -> None:
        pool = MatchPool(_make_settings())
        gallery = [EnrolledIdentity(key="S1", name="Ada", descriptors=((0.0, 0.0),))]
        try:
            results = await pool.match(gallery, [[0.1, 0.1], [5.0, 5.0]], 0.6)
        finally:
            pool.shutdown()

        assert results[0] is not None
        assert results[0].key == "S1"
        assert results[1] is None

    async def test_parallel_probes_same_results(self) -> None:
        gallery = [
            EnrolledIdentity(key=f"S{i}", name=f"S{i}", descriptors=((float(i), 0.0),)) for i in range(8)
        ]
        probes = [[i + 0.05, 0.0] for i in range(8)] + [[100.0, 0.0]]

        sequential = MatchPool(_make_settings())
        parallel = MatchPool(_make_settings(parallel_probes=True))
        try:
            expected = await sequential.match(gallery, probes, 0.6)
            actual = await parallel.match(gallery, probes, 0.6)
        finally:
            sequential.shutdown()
            parallel.shutdown()

        assert actual == expected
        assert [r.key if r else None for r in actual] == [f"S{i}" for i in range(8)] + [None]

    async def test_run_times_out_when_saturated(self) -> None:
        pool = MatchPool(_make_settings(max_concurrent=1, queue_timeout=0.05))
        release = threading.Event()
        try:
            first = asyncio.create_task(pool.run(release.wait, 5))
            await asyncio.sleep(0.02)
            assert pool.active_count == 1

            with pytest.raises(TimeoutError):
                await pool.run(sum, [1])
            assert pool.queue_depth == 0

            release.set()
            assert await first is True
        finally:
            release.set()
            pool.shutdown()
