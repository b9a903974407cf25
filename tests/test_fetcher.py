"""
Bounded Fetcher & Watcher Tests
===============================
Failure isolation, ordering, progress and concurrency bounds of
run_bounded(); polling behaviour of the watcher. No network.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from treeherder_cli.agents.fetcher import FetchEvent, describe_error, run_bounded
from treeherder_cli.agents.watcher import (
    are_all_jobs_complete,
    completion_message,
    count_job_states,
    watch_until_complete,
)
from treeherder_cli.models.job import Job


# ---------------------------------------------------------------------------
# run_bounded
# ---------------------------------------------------------------------------
class TestRunBounded:

    def test_failures_are_isolated_and_order_kept(self):
        events = []
        progress = []

        async def operation(n):
            # Later items finish first so completion order differs from input order
            await asyncio.sleep(0.001 * (10 - n))
            if n % 3 == 0:
                raise RuntimeError(f"item {n} failed")
            return n * 10

        async def run_test():
            return await run_bounded(
                range(10),
                operation,
                limit=4,
                label=lambda n: f"item-{n}",
                on_event=events.append,
                on_progress=lambda done, total: progress.append((done, total)),
            )

        results = asyncio.run(run_test())

        assert results == [10, 20, 40, 50, 70, 80]
        failures = [e for e in events if not e.ok]
        assert sorted(e.label for e in failures) == ["item-0", "item-3", "item-6", "item-9"]
        assert all("RuntimeError" in e.error for e in failures)
        assert len([e for e in events if e.ok]) == 6
        assert len(progress) == 10
        assert progress[-1] == (10, 10)
        assert [done for done, _ in progress] == list(range(1, 11))

    def test_concurrency_never_exceeds_limit(self):
        in_flight = 0
        peak = 0

        async def operation(n):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.002)
            in_flight -= 1
            return n

        results = asyncio.run(run_bounded(range(25), operation, limit=3))
        assert results == list(range(25))
        assert peak <= 3

    def test_empty_input(self):
        async def operation(n):
            return n

        assert asyncio.run(run_bounded([], operation, limit=5)) == []

    def test_invalid_limit(self):
        async def operation(n):
            return n

        with pytest.raises(ValueError):
            asyncio.run(run_bounded([1], operation, limit=0))

    def test_default_sink_logs_failures(self, caplog):
        caplog.set_level("WARNING", logger="treeherder_cli.agents.fetcher")

        async def operation(n):
            raise ValueError("bad row")

        assert asyncio.run(run_bounded(["x"], operation, limit=1)) == []
        assert "Fetch failed for x" in caplog.text

    def test_describe_error(self):
        assert describe_error(ValueError("bad")) == "ValueError: bad"
        assert describe_error(KeyError()) == "KeyError"

    def test_fetch_event_defaults(self):
        assert FetchEvent(label="job 1", ok=True).error == ""


# ---------------------------------------------------------------------------
# Watcher
# ---------------------------------------------------------------------------
def _job(job_id, state="completed", result="success"):
    return Job(
        id=job_id,
        job_type_name="test-linux/opt-xpcshell",
        job_type_symbol="X",
        platform="linux64",
        result=result,
        state=state,
    )


class TestWatcher:

    def test_count_states(self):
        jobs = [_job(1), _job(2, "running", "unknown"), _job(3, "pending", "unknown"), _job(4)]
        assert count_job_states(jobs) == (2, 1, 1)
        assert not are_all_jobs_complete(jobs)
        assert are_all_jobs_complete([_job(1), _job(4)])

    def test_completion_message(self):
        assert completion_message([_job(1), _job(2)]) == "All 2 jobs passed!"
        assert completion_message([_job(1), _job(2, result="testfailed"), _job(3, result="busted")]) == (
            "2 of 3 jobs failed"
        )

    def test_polls_until_complete(self):
        snapshots = [
            [_job(1, "running", "unknown"), _job(2, "pending", "unknown")],
            [_job(1), _job(2, "running", "unknown")],
            [_job(1), _job(2, result="testfailed")],
        ]
        fetch = AsyncMock(side_effect=snapshots)
        sleep = AsyncMock()
        statuses = []

        final = asyncio.run(
            watch_until_complete(fetch, 30, on_status=lambda *s: statuses.append(s), sleep=sleep)
        )

        assert final == snapshots[-1]
        assert fetch.await_count == 3
        assert sleep.await_count == 2
        sleep.assert_awaited_with(30)
        assert statuses == [(0, 1, 1), (1, 1, 0)]

    def test_already_complete_does_not_sleep(self):
        jobs = [_job(1)]
        fetch = AsyncMock()
        sleep = AsyncMock()
        assert asyncio.run(watch_until_complete(fetch, 30, jobs=jobs, sleep=sleep)) == jobs
        fetch.assert_not_awaited()
        sleep.assert_not_awaited()
