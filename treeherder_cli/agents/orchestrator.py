"""
Report Orchestrator
===================
Drives one report end to end:

    input → revision → push id → job list → (watch) → filter chain
          → one fetch branch (logs / artifacts / perf / details)
          → aggregation (group-by-test or compare) → report model

Modes, checked in order:
    1. similar history   - similar_jobs statistics for one job id
    2. cache only        - metadata.json + cached logs, no network
    3. compare           - set diff of failures between two revisions
    4. push report       - everything else

Failure policy:
    - InvalidInput is raised by ReportOptions.check_combination() before any
      network call.
    - Push lookup / job list / Lando errors abort the report.
    - A job whose fetch fails is dropped from its batch; the failure reaches
      the on_event callback as a FetchEvent.
"""
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union

from treeherder_cli.agents.fetcher import EventCallback, log_event, run_bounded
from treeherder_cli.agents.job_tasks import (
    download_job_artifacts,
    fetch_job_perf_data,
    fetch_job_with_errors,
    fetch_job_with_full_logs,
    job_label,
)
from treeherder_cli.agents.watcher import StatusCallback, completion_message, watch_until_complete
from treeherder_cli.analysis.comparison import compare_failures
from treeherder_cli.analysis.filters import filter_for_options
from treeherder_cli.analysis.grouping import group_failures_by_test
from treeherder_cli.analysis.history import summarize_similar_jobs
from treeherder_cli.core.constants import (
    ARTIFACT_CONCURRENCY,
    DETAIL_CONCURRENCY,
    LOG_CONCURRENCY,
    PERF_CONCURRENCY,
)
from treeherder_cli.core.errors import InvalidInput
from treeherder_cli.models.aggregates import ComparisonResult, SimilarJobHistory
from treeherder_cli.models.cache import CachedPushMetadata
from treeherder_cli.models.job import Job, JobWithLogs
from treeherder_cli.models.options import ReportOptions
from treeherder_cli.models.reports import ArtifactReport, GroupedReport, PerfReport, PushReport
from treeherder_cli.parser.revision import extract_revision
from treeherder_cli.services.cache_service import (
    load_cache_metadata,
    save_cache_metadata,
    search_cached_logs,
)
from treeherder_cli.services.lando_client import LandoClient
from treeherder_cli.services.log_store import LogStorage
from treeherder_cli.services.notifier import send_notification
from treeherder_cli.services.taskcluster_client import TaskclusterClient
from treeherder_cli.services.treeherder_client import TreeherderClient
from treeherder_cli.utils.progress import NullProgress

logger = logging.getLogger(__name__)

Report = Union[
    PushReport, GroupedReport, PerfReport, ArtifactReport, ComparisonResult, SimilarJobHistory
]

NOTIFICATION_TITLE = "Treeherder Jobs Complete"


def _no_progress(message: str):
    return NullProgress()


class ReportOrchestrator:
    """
    Builds report models from the upstream APIs (or the cache).

    Usage:
        orchestrator = ReportOrchestrator()
        try:
            report = await orchestrator.run(options)
        finally:
            await orchestrator.close()
    """

    def __init__(
        self,
        treeherder: Optional[TreeherderClient] = None,
        taskcluster: Optional[TaskclusterClient] = None,
        lando: Optional[LandoClient] = None,
        on_event: Optional[EventCallback] = None,
        on_status: Optional[StatusCallback] = None,
        progress_factory: Callable[[str], object] = _no_progress,
        notify: Callable[[str, str], bool] = send_notification,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.treeherder = treeherder or TreeherderClient()
        self.taskcluster = taskcluster or TaskclusterClient()
        self.lando = lando or LandoClient()
        self.on_event = on_event or log_event
        self.on_status = on_status
        self.progress_factory = progress_factory
        self.notify = notify
        self.sleep = sleep
        self._storages: List[LogStorage] = []

    async def close(self) -> None:
        """Close HTTP clients and remove ephemeral log directories."""
        for storage in self._storages:
            storage.cleanup()
        self._storages.clear()
        await self.treeherder.close()
        await self.taskcluster.close()
        await self.lando.close()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    async def run(self, options: ReportOptions) -> Report:
        options.check_combination()

        if options.similar_history is not None:
            return await self.similar_history(options.repo, options.similar_history, options.similar_count)

        if options.use_cache:
            return self.cached_report(options)

        compare_revision = extract_revision(options.compare) if options.compare is not None else None
        revision = await self.resolve_revision(options)
        logger.info("Resolved revision %s", revision)
        push_id = await self.treeherder.fetch_push_id(options.repo, revision)
        logger.info("Push ID: %s", push_id)

        if compare_revision is not None:
            return await self.comparison(options, revision, push_id, compare_revision)

        return await self.push_report(options, revision, push_id)

    async def resolve_revision(self, options: ReportOptions) -> str:
        if options.lando_job_id is not None:
            return await self.lando.fetch_commit(options.lando_job_id)
        if options.input is None:
            raise InvalidInput("No revision input given")
        return extract_revision(options.input)

    # ------------------------------------------------------------------
    # Fan-out helper
    # ------------------------------------------------------------------
    async def _fan_out(self, jobs: List[Job], operation, limit: int, message: str) -> list:
        progress = self.progress_factory(message)
        results = await run_bounded(
            jobs,
            operation,
            limit,
            label=job_label,
            on_event=self.on_event,
            on_progress=progress.advance,
        )
        progress.finish(f"{message}: {len(results)}/{len(jobs)} done")
        if len(results) < len(jobs):
            logger.warning("%d of %d jobs could not be fetched", len(jobs) - len(results), len(jobs))
        return results

    async def fetch_errors(self, repo: str, jobs: List[Job], message: str = "Fetching job details") -> List[JobWithLogs]:
        async def _op(job: Job) -> JobWithLogs:
            return await fetch_job_with_errors(self.treeherder, repo, job, self.on_event)

        return await self._fan_out(jobs, _op, DETAIL_CONCURRENCY, message)

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------
    async def similar_history(self, repo: str, job_id: int, count: int) -> SimilarJobHistory:
        logger.info("Fetching %d similar jobs for job %s", count, job_id)
        jobs, upstream_repo = await self.treeherder.fetch_similar_jobs(repo, job_id, count)
        return summarize_similar_jobs(job_id, upstream_repo, jobs)

    def cached_report(self, options: ReportOptions) -> Union[PushReport, GroupedReport]:
        cache_path = Path(options.cache_dir)
        if not cache_path.is_dir():
            raise InvalidInput(f"Cache directory does not exist: {cache_path}")

        logger.info("Loading cached data from: %s", cache_path)
        metadata = load_cache_metadata(cache_path)
        logger.info("Push ID: %s, Revision: %s, cached jobs: %d",
                    metadata.push_id, metadata.revision, len(metadata.jobs))

        filtered = filter_for_options(metadata.jobs, options)
        logger.info("Jobs matching filter: %d", len(filtered))

        jobs_with_logs = search_cached_logs(cache_path, filtered, options.pattern_regex())
        return self._shape(options, metadata.revision, metadata.push_id, jobs_with_logs, fetch_logs=True)

    async def comparison(
        self, options: ReportOptions, revision: str, push_id: int, compare_revision: str
    ) -> ComparisonResult:
        compare_push_id = await self.treeherder.fetch_push_id(options.repo, compare_revision)

        base_jobs, other_jobs = await asyncio.gather(
            self.treeherder.fetch_jobs(push_id),
            self.treeherder.fetch_jobs(compare_push_id),
        )
        base_filtered = filter_for_options(base_jobs, options)
        other_filtered = filter_for_options(other_jobs, options)

        base_with_errors = await self.fetch_errors(options.repo, base_filtered, "Fetching base job errors")
        other_with_errors = await self.fetch_errors(
            options.repo, other_filtered, "Fetching comparison job errors"
        )

        return compare_failures(
            base_with_errors,
            other_with_errors,
            revision,
            compare_revision,
            push_id,
            compare_push_id,
        )

    async def push_report(self, options: ReportOptions, revision: str, push_id: int) -> Report:
        all_jobs = await self.treeherder.fetch_jobs(push_id)

        if options.watch:
            all_jobs = await watch_until_complete(
                lambda: self.treeherder.fetch_jobs(push_id),
                options.watch_interval,
                jobs=all_jobs,
                on_status=self.on_status,
                sleep=self.sleep,
            )
            if options.notify:
                self.notify(NOTIFICATION_TITLE, completion_message(all_jobs))

        filtered = filter_for_options(all_jobs, options)
        if not filtered:
            logger.info("No jobs found matching criteria")
            return PushReport(revision=revision, push_id=push_id, fetch_logs=options.fetch_logs)
        logger.info("Found %d jobs matching criteria", len(filtered))

        if options.fetch_logs:
            return await self._log_report(options, revision, push_id, filtered)
        if options.download_artifacts:
            return await self._artifact_report(options, revision, push_id, filtered)
        if options.perf:
            return await self._perf_report(options, revision, push_id, filtered)

        jobs_with_logs = await self.fetch_errors(options.repo, filtered)
        return self._shape(options, revision, push_id, jobs_with_logs)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------
    async def _log_report(
        self, options: ReportOptions, revision: str, push_id: int, jobs: List[Job]
    ) -> Union[PushReport, GroupedReport]:
        if options.cache_dir:
            storage = LogStorage.persistent(options.cache_dir)
        else:
            storage = LogStorage.ephemeral()
            self._storages.append(storage)
        pattern = options.pattern_regex()

        async def _op(job: Job) -> JobWithLogs:
            return await fetch_job_with_full_logs(
                self.treeherder, options.repo, job, storage, pattern, self.on_event
            )

        jobs_with_logs = await self._fan_out(jobs, _op, LOG_CONCURRENCY, "Fetching and processing logs")

        saved_metadata = None
        if options.cache_dir:
            metadata = CachedPushMetadata(revision=revision, push_id=push_id, repo=options.repo, jobs=jobs)
            saved_metadata = str(save_cache_metadata(storage.root, metadata))

        report = self._shape(options, revision, push_id, jobs_with_logs, fetch_logs=True)
        if isinstance(report, PushReport):
            report.storage_root = str(storage.root)
            report.storage_ephemeral = storage.is_ephemeral
            report.metadata_path = saved_metadata
        return report

    async def _artifact_report(
        self, options: ReportOptions, revision: str, push_id: int, jobs: List[Job]
    ) -> ArtifactReport:
        artifact_dir = Path(options.cache_dir) if options.cache_dir else Path(f"artifacts-{revision}")
        artifact_dir.mkdir(parents=True, exist_ok=True)
        artifact_pattern = options.artifact_regex()

        async def _op(job: Job) -> List[str]:
            return await download_job_artifacts(
                self.treeherder, self.taskcluster, options.repo, job,
                artifact_dir, artifact_pattern, self.on_event,
            )

        downloaded = await self._fan_out(jobs, _op, ARTIFACT_CONCURRENCY, "Downloading artifacts")
        return ArtifactReport(
            revision=revision,
            push_id=push_id,
            artifact_dir=str(artifact_dir),
            total_files=sum(len(paths) for paths in downloaded),
        )

    async def _perf_report(
        self, options: ReportOptions, revision: str, push_id: int, jobs: List[Job]
    ) -> PerfReport:
        async def _op(job: Job):
            return await fetch_job_perf_data(self.treeherder, self.taskcluster, options.repo, job)

        perf = await self._fan_out(jobs, _op, PERF_CONCURRENCY, "Fetching performance data")
        return PerfReport(revision=revision, push_id=push_id, jobs=perf)

    @staticmethod
    def _shape(
        options: ReportOptions,
        revision: str,
        push_id: int,
        jobs_with_logs: List[JobWithLogs],
        fetch_logs: bool = False,
    ) -> Union[PushReport, GroupedReport]:
        if options.group_by == "test":
            return GroupedReport(
                revision=revision,
                push_id=push_id,
                grouped_failures=group_failures_by_test(jobs_with_logs),
            )
        return PushReport(revision=revision, push_id=push_id, jobs=jobs_with_logs, fetch_logs=fetch_logs)
