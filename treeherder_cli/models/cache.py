"""
Cached Push Metadata
Pydantic model persisted as <cache-root>/metadata.json.
Job ids listed here map 1:1 onto <cache-root>/job_<id>/ directories.
"""
from typing import List

from pydantic import BaseModel

from .job import Job


class CachedPushMetadata(BaseModel):
    revision: str
    push_id: int
    repo: str
    jobs: List[Job]
