"""
Report Models
=============
What the orchestrator hands to the renderers, one model per mode.

    PushReport      - jobs of one push with their errors / log matches
    GroupedReport   - the same push regrouped by failing test
    PerfReport      - per-job perfherder resource usage
    ArtifactReport  - where artifacts were written and how many

ComparisonResult and SimilarJobHistory (models/aggregates.py) are rendered
directly.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from .aggregates import GroupedTestFailure
from .job import JobWithLogs
from .perf import JobPerfData


class PushReport(BaseModel):
    revision: str
    push_id: int
    jobs: List[JobWithLogs] = []

    # Presentation hints, never serialized
    fetch_logs: bool = Field(default=False, exclude=True)
    storage_root: Optional[str] = Field(default=None, exclude=True)
    storage_ephemeral: bool = Field(default=False, exclude=True)
    metadata_path: Optional[str] = Field(default=None, exclude=True)


class GroupedReport(BaseModel):
    revision: str
    push_id: int
    grouped_failures: List[GroupedTestFailure] = []


class PerfReport(BaseModel):
    revision: str
    push_id: int
    jobs: List[JobPerfData] = []


class ArtifactReport(BaseModel):
    revision: str
    push_id: int
    artifact_dir: str
    total_files: int
