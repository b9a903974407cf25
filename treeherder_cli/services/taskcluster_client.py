"""
Taskcluster Client
==================
Artifact listing/download and perf resource retrieval from the Taskcluster
queue.

    GET /task/{task_id}/runs/{retry_id}/artifacts          → listing
    GET /task/{task_id}/runs/{retry_id}/artifacts/{name}   → artifact body
"""
import logging
import os
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import ValidationError

from treeherder_cli.core import config
from treeherder_cli.core.constants import PERF_ARTIFACT_NAME
from treeherder_cli.core.errors import UpstreamUnexpected
from treeherder_cli.models.perf import PerfherderData, TaskclusterArtifact
from treeherder_cli.parser.perf_resource import PerfRedirect, decode_perf_payload, decode_perf_resource
from treeherder_cli.services.api_client import ApiClient

logger = logging.getLogger(__name__)


def artifact_target(output_dir: Path, artifact_name: str) -> Path:
    """Local path for an artifact; rejects names that escape output_dir."""
    target = (output_dir / artifact_name).resolve()
    root = output_dir.resolve()
    if os.path.commonpath([root, target]) != str(root) or target == root:
        raise UpstreamUnexpected(f"Refusing artifact name outside job directory: {artifact_name!r}")
    return target


class TaskclusterClient(ApiClient):
    def __init__(
        self,
        base_url: str = config.TASKCLUSTER_API_URL,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(base_url, http)

    def artifact_url(self, task_id: str, retry_id: int, name: Optional[str] = None) -> str:
        path = f"task/{task_id}/runs/{retry_id}/artifacts"
        if name:
            path = f"{path}/{name}"
        return self.url(path)

    async def fetch_artifacts(self, task_id: str, retry_id: int) -> List[TaskclusterArtifact]:
        data = await self.get_json(self.artifact_url(task_id, retry_id))
        if not isinstance(data, dict):
            raise UpstreamUnexpected(f"Artifact listing for {task_id}/{retry_id} is not an object")
        try:
            return [TaskclusterArtifact.model_validate(item) for item in data.get("artifacts", [])]
        except ValidationError as exc:
            raise UpstreamUnexpected(f"Malformed artifact listing for {task_id}: {exc}") from exc

    async def download_artifact(
        self, task_id: str, retry_id: int, artifact_name: str, output_dir: Path
    ) -> Path:
        """Stream one artifact to output_dir/<artifact_name>, creating parents."""
        target = artifact_target(output_dir, artifact_name)
        target.parent.mkdir(parents=True, exist_ok=True)

        http = await self._get_http()
        url = self.artifact_url(task_id, retry_id, artifact_name)
        async with http.stream("GET", url) as response:
            response.raise_for_status()
            try:
                with open(target, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
            except (httpx.HTTPError, OSError):
                # Never leave a truncated artifact behind
                target.unlink(missing_ok=True)
                raise
        return target

    async def fetch_perf_data(self, task_id: str, retry_id: int) -> Optional[PerfherderData]:
        """
        Fetch the resource-usage perf artifact, following a redirect pointer.

        Returns None when the artifact is absent or neither shape decodes;
        HTTP errors on the pointer target are treated the same way.
        """
        try:
            text = await self.get_text(self.artifact_url(task_id, retry_id, PERF_ARTIFACT_NAME))
        except httpx.HTTPError as exc:
            logger.debug("No perf artifact for %s/%s: %s", task_id, retry_id, exc)
            return None

        try:
            resource = decode_perf_resource(text)
        except ValueError as exc:
            logger.debug("Perf artifact for %s/%s not decodable: %s", task_id, retry_id, exc)
            return None

        if not isinstance(resource, PerfRedirect):
            return resource.data

        try:
            body = await self.get_text(resource.url)
            return decode_perf_payload(body)
        except httpx.HTTPError as exc:
            logger.warning("Perf redirect %s failed: %s", resource.url, exc)
        except ValueError as exc:
            logger.debug("Perf redirect target %s not decodable: %s", resource.url, exc)
        return None
