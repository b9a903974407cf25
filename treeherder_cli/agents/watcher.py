"""
Watcher
=======
Polls a push's job list until every job reports state `completed`.

One poll at a time, a fixed interval between polls, no overlap. The status
callback receives (completed, running, pending) before each sleep.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from treeherder_cli.core.constants import (
    FAILED_RESULTS,
    STATE_COMPLETED,
    STATE_PENDING,
    STATE_RUNNING,
)
from treeherder_cli.models.job import Job

logger = logging.getLogger(__name__)

StatusCallback = Callable[[int, int, int], None]


def are_all_jobs_complete(jobs: List[Job]) -> bool:
    return all(job.state == STATE_COMPLETED for job in jobs)


def count_job_states(jobs: List[Job]) -> Tuple[int, int, int]:
    """Return (completed, running, pending)."""
    completed = sum(1 for j in jobs if j.state == STATE_COMPLETED)
    running = sum(1 for j in jobs if j.state == STATE_RUNNING)
    pending = sum(1 for j in jobs if j.state == STATE_PENDING)
    return completed, running, pending


def completion_message(jobs: List[Job]) -> str:
    completed, _, _ = count_job_states(jobs)
    failed = sum(1 for j in jobs if j.result in FAILED_RESULTS)
    if failed:
        return f"{failed} of {completed} jobs failed"
    return f"All {completed} jobs passed!"


def _log_status(completed: int, running: int, pending: int) -> None:
    logger.info("Jobs: %d completed, %d running, %d pending", completed, running, pending)


async def watch_until_complete(
    fetch_jobs: Callable[[], Awaitable[List[Job]]],
    interval: float,
    jobs: Optional[List[Job]] = None,
    on_status: Optional[StatusCallback] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[Job]:
    """Re-fetch until all jobs are completed; returns the final job list."""
    if jobs is None:
        jobs = await fetch_jobs()
    report = on_status or _log_status

    while not are_all_jobs_complete(jobs):
        report(*count_job_states(jobs))
        await sleep(interval)
        jobs = await fetch_jobs()

    logger.info("All %d jobs completed", len(jobs))
    return jobs
