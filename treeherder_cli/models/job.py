"""
Job Models
==========
Pydantic models for one push's jobs and everything attached to a single job.

Fields (Job):
    id                          - numeric job id, unique within one push
    job_type_name               - full job type (e.g. "test-linux1804-64/opt-mochitest-1")
    job_type_symbol             - short symbol shown on Treeherder (e.g. "M1")
    platform                    - platform string (e.g. "linux1804-64")
    platform_option             - build modifier (opt / debug / asan), "" when absent
    result                      - success / testfailed / busted / unknown / ... (free-form)
    state                       - pending / running / completed (free-form)
    failure_classification_id   - 4 means "intermittent"
    duration                    - seconds, when upstream reports it

A Job is built once by the job-table normalizer and never mutated.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, model_serializer


class Job(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    job_type_name: str
    job_type_symbol: str
    platform: str
    platform_option: str = ""
    result: str
    state: str
    failure_classification_id: Optional[int] = None
    duration: Optional[int] = None


class LogReference(BaseModel):
    name: str
    url: str


class JobDetail(BaseModel):
    """Job detail endpoint payload; task_id/retry_id only on the extended variant."""
    id: int
    job_type_name: str = ""
    platform: str = ""
    result: str = ""
    logs: List[LogReference] = []
    task_id: Optional[str] = None
    retry_id: Optional[int] = None


class ErrorLine(BaseModel):
    """One NDJSON record from an error-summary log."""
    action: str
    line: Optional[int] = None
    test: Optional[str] = None
    subtest: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    stack: Optional[str] = None


class LogMatch(BaseModel):
    log_name: str
    line_number: int  # 1-based
    line_content: str


class JobWithLogs(BaseModel):
    """The unit handed to every renderer."""
    job: Job
    errors: List[ErrorLine] = []
    log_matches: List[LogMatch] = []
    log_dir: Optional[str] = None

    @model_serializer(mode="wrap")
    def _drop_missing_log_dir(self, handler):
        data = handler(self)
        if data.get("log_dir") is None:
            data.pop("log_dir", None)
        return data
