"""
Lando Client
============
Resolves a landing-job id to the commit it landed.

Only a job whose status is exactly LANDED has a commit id:
    status != LANDED            → NotLanded
    LANDED without commit_id    → MissingCommitId
    echoed id != requested id   → UpstreamUnexpected
"""
import logging
from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError

from treeherder_cli.core import config
from treeherder_cli.core.constants import LANDED_STATUS
from treeherder_cli.core.errors import MissingCommitId, NotLanded, UpstreamUnexpected
from treeherder_cli.services.api_client import ApiClient

logger = logging.getLogger(__name__)


class LandoJob(BaseModel):
    id: int
    status: str
    commit_id: Optional[str] = None


class LandoClient(ApiClient):
    def __init__(
        self,
        base_url: str = config.LANDO_API_URL,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(base_url, http)

    async def fetch_job_status(self, job_id: int) -> LandoJob:
        data = await self.get_json(self.url(f"landing_jobs/{job_id}"))
        try:
            job = LandoJob.model_validate(data)
        except ValidationError as exc:
            raise UpstreamUnexpected(f"Malformed Lando response for job {job_id}: {exc}") from exc
        if job.id != job_id:
            raise UpstreamUnexpected(
                f"Lando API returned unexpected job ID: expected {job_id}, got {job.id}"
            )
        return job

    async def fetch_commit(self, job_id: int) -> str:
        job = await self.fetch_job_status(job_id)
        if job.status != LANDED_STATUS:
            raise NotLanded(job_id, job.status)
        if not job.commit_id:
            raise MissingCommitId(job_id)
        logger.info("Lando job %s landed as %s", job_id, job.commit_id)
        return job.commit_id
