"""
Treeherder Client
=================
Async wrapper over the Treeherder REST endpoints used by the report pipeline.

Endpoints:
    GET /project/{repo}/push/?revision=R&count=10&full=true   → push id
    GET /jobs/?push_id=N                                      → job table
    GET /project/{repo}/jobs/{id}/                            → job detail + logs
    GET /project/{repo}/jobs/{id}/similar_jobs/?count=N       → similar jobs
    GET <log url>                                             → raw log text
"""
import logging
from typing import List, Optional, Tuple

import httpx
from pydantic import ValidationError

from treeherder_cli.core import config
from treeherder_cli.core.errors import UpstreamUnexpected
from treeherder_cli.models.aggregates import SimilarJob
from treeherder_cli.models.job import ErrorLine, Job, JobDetail, LogReference
from treeherder_cli.parser.error_summary import parse_error_summary
from treeherder_cli.parser.job_table import normalize_jobs
from treeherder_cli.services.api_client import ApiClient

logger = logging.getLogger(__name__)


class TreeherderClient(ApiClient):
    """
    Client for one Treeherder instance.

    Usage:
        client = TreeherderClient()
        push_id = await client.fetch_push_id("try", "abc123")
        jobs = await client.fetch_jobs(push_id)
        await client.close()
    """

    def __init__(
        self,
        base_url: str = config.TREEHERDER_API_URL,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(base_url, http)

    async def fetch_push_id(self, repo: str, revision: str) -> int:
        data = await self.get_json(
            self.url(f"project/{repo}/push/"),
            params={"full": "true", "count": 10, "revision": revision},
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            raise UpstreamUnexpected(f"No push found for revision {revision} in {repo}")
        push_id = results[0].get("id") if isinstance(results[0], dict) else None
        if not isinstance(push_id, int):
            raise UpstreamUnexpected(f"Push lookup for {revision} returned no usable id")
        return push_id

    async def fetch_jobs(self, push_id: int) -> List[Job]:
        data = await self.get_json(self.url("jobs/"), params={"push_id": push_id})
        if not isinstance(data, dict) or "job_property_names" not in data or "results" not in data:
            raise UpstreamUnexpected(f"Job list for push {push_id} is not a job table")
        jobs = normalize_jobs(data)
        logger.debug("Push %s: %d jobs normalized", push_id, len(jobs))
        return jobs

    async def fetch_job_details(self, repo: str, job_id: int) -> JobDetail:
        """Job detail; carries task_id/retry_id when upstream includes them."""
        data = await self.get_json(self.url(f"project/{repo}/jobs/{job_id}/"))
        try:
            detail = JobDetail.model_validate(data)
        except ValidationError as exc:
            raise UpstreamUnexpected(f"Malformed detail for job {job_id}: {exc}") from exc
        if detail.id != job_id:
            raise UpstreamUnexpected(
                f"Treeherder returned job {detail.id} when asked for job {job_id}"
            )
        return detail

    async def fetch_error_summary(self, log_ref: LogReference) -> List[ErrorLine]:
        text = await self.get_text(log_ref.url)
        return parse_error_summary(text)

    async def fetch_log_text(self, log_ref: LogReference) -> str:
        return await self.get_text(log_ref.url)

    async def fetch_similar_jobs(self, repo: str, job_id: int, count: int) -> Tuple[List[SimilarJob], str]:
        """Return (similar jobs, repository name reported by upstream)."""
        data = await self.get_json(
            self.url(f"project/{repo}/jobs/{job_id}/similar_jobs/"),
            params={"count": count},
        )
        if not isinstance(data, dict):
            raise UpstreamUnexpected(f"Similar jobs for {job_id}: unexpected response")
        try:
            jobs = [SimilarJob.model_validate(item) for item in data.get("results", [])]
        except ValidationError as exc:
            raise UpstreamUnexpected(f"Malformed similar job for {job_id}: {exc}") from exc
        meta = data.get("meta") or {}
        return jobs, meta.get("repository") or repo
