"""
Performance & Artifact Models
Shapes returned by the Taskcluster queue: artifact listings and the
perfherder resource-usage payload.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskclusterArtifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    storage_type: str = Field(default="", alias="storageType")
    expires: str = ""
    content_type: Optional[str] = Field(default=None, alias="contentType")


class PerfherderFramework(BaseModel):
    name: str


class PerfherderSubtest(BaseModel):
    name: str
    value: float


class PerfherderSuite(BaseModel):
    name: str
    subtests: List[PerfherderSubtest] = []


class PerfherderData(BaseModel):
    framework: PerfherderFramework
    suites: List[PerfherderSuite]


class JobPerfData(BaseModel):
    job_id: int
    job_type_name: str
    platform: str
    perf_data: Optional[PerfherderData] = None
