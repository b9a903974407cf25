"""
Per-Job Tasks
=============
The async operations the orchestrator fans out over a push's jobs.

    fetch_job_with_errors      - detail + parsed error summaries
    fetch_job_with_full_logs   - detail + every log saved to disk, errors
                                 parsed from error summaries, optional regex scan
    download_job_artifacts     - task artifacts filtered by name, saved per job
    fetch_job_perf_data        - perfherder resource usage

Each task raises when its job-level request fails (the fetcher drops the
job). Failures of individual logs/artifacts inside a job are reported
through on_event and skipped.
"""
import asyncio
from pathlib import Path
from typing import List, Optional, Pattern

from treeherder_cli.agents.fetcher import EventCallback, FetchEvent, describe_error, log_event
from treeherder_cli.models.job import ErrorLine, Job, JobWithLogs, LogMatch
from treeherder_cli.models.perf import JobPerfData
from treeherder_cli.parser.error_summary import is_error_summary, parse_error_summary
from treeherder_cli.services.log_store import LogStorage, job_dir_name, save_log, search_text
from treeherder_cli.services.taskcluster_client import TaskclusterClient
from treeherder_cli.services.treeherder_client import TreeherderClient


def job_label(job: Job) -> str:
    return f"job {job.id} ({job.job_type_name})"


def _failed(exc: BaseException, label: str, on_event: Optional[EventCallback]) -> None:
    if not isinstance(exc, Exception):
        raise exc
    (on_event or log_event)(FetchEvent(label=label, ok=False, error=describe_error(exc)))


async def fetch_job_with_errors(
    treeherder: TreeherderClient,
    repo: str,
    job: Job,
    on_event: Optional[EventCallback] = None,
) -> JobWithLogs:
    detail = await treeherder.fetch_job_details(repo, job.id)
    summaries = [ref for ref in detail.logs if is_error_summary(ref)]

    outcomes = await asyncio.gather(
        *(treeherder.fetch_error_summary(ref) for ref in summaries),
        return_exceptions=True,
    )

    errors: List[ErrorLine] = []
    for ref, outcome in zip(summaries, outcomes):
        if isinstance(outcome, BaseException):
            _failed(outcome, f"{job_label(job)} error summary {ref.name}", on_event)
            continue
        errors.extend(outcome)

    return JobWithLogs(job=job, errors=errors)


async def fetch_job_with_full_logs(
    treeherder: TreeherderClient,
    repo: str,
    job: Job,
    storage: LogStorage,
    pattern: Optional[Pattern[str]] = None,
    on_event: Optional[EventCallback] = None,
) -> JobWithLogs:
    detail = await treeherder.fetch_job_details(repo, job.id)
    job_dir = storage.job_dir(job.id)

    outcomes = await asyncio.gather(
        *(treeherder.fetch_log_text(ref) for ref in detail.logs),
        return_exceptions=True,
    )

    errors: List[ErrorLine] = []
    log_matches: List[LogMatch] = []
    for ref, outcome in zip(detail.logs, outcomes):
        if isinstance(outcome, BaseException):
            _failed(outcome, f"{job_label(job)} log {ref.name}", on_event)
            continue

        save_log(job_dir, ref.name, outcome)
        if is_error_summary(ref):
            errors.extend(parse_error_summary(outcome))
        if pattern is not None:
            log_matches.extend(search_text(outcome, pattern, ref.name))

    return JobWithLogs(job=job, errors=errors, log_matches=log_matches, log_dir=str(job_dir))


async def download_job_artifacts(
    treeherder: TreeherderClient,
    taskcluster: TaskclusterClient,
    repo: str,
    job: Job,
    output_dir: Path,
    artifact_pattern: Optional[Pattern[str]] = None,
    on_event: Optional[EventCallback] = None,
) -> List[str]:
    """Download matching artifacts into output_dir/job_<id>/; returns saved paths."""
    detail = await treeherder.fetch_job_details(repo, job.id)
    if detail.task_id is None or detail.retry_id is None:
        # Never ran on Taskcluster: nothing to download
        return []

    artifacts = await taskcluster.fetch_artifacts(detail.task_id, detail.retry_id)
    wanted = [a for a in artifacts if artifact_pattern is None or artifact_pattern.search(a.name)]
    if not wanted:
        return []

    job_dir = Path(output_dir) / job_dir_name(job.id)
    job_dir.mkdir(parents=True, exist_ok=True)

    downloaded: List[str] = []
    for artifact in wanted:
        try:
            path = await taskcluster.download_artifact(
                detail.task_id, detail.retry_id, artifact.name, job_dir
            )
        except Exception as exc:
            _failed(exc, f"{job_label(job)} artifact {artifact.name}", on_event)
            continue
        downloaded.append(str(path))
    return downloaded


async def fetch_job_perf_data(
    treeherder: TreeherderClient,
    taskcluster: TaskclusterClient,
    repo: str,
    job: Job,
) -> JobPerfData:
    detail = await treeherder.fetch_job_details(repo, job.id)

    perf_data = None
    if detail.task_id is not None and detail.retry_id is not None:
        perf_data = await taskcluster.fetch_perf_data(detail.task_id, detail.retry_id)

    return JobPerfData(
        job_id=job.id,
        job_type_name=job.job_type_name,
        platform=job.platform,
        perf_data=perf_data,
    )
