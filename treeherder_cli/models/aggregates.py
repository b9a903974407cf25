"""
Aggregate Models
================
Derived, never-persisted results of the aggregation stage.

    GroupedTestFailure  - one test name, its deduplicated platforms and every
                          (job id, platform, job type, subtest, message) hit.
    ComparisonResult    - new / fixed / still-failing tests between a base
                          and a compare revision, regrouped by test name.
    SimilarJobHistory   - pass/fail tally over historically similar jobs.
"""
from typing import List, Optional

from pydantic import BaseModel


class GroupedJobInfo(BaseModel):
    job_id: int
    platform: str
    job_type_name: str
    subtest: Optional[str] = None
    message: Optional[str] = None


class GroupedTestFailure(BaseModel):
    test_name: str
    platforms: List[str]
    jobs: List[GroupedJobInfo]


class ComparisonFailure(BaseModel):
    test_name: str
    platforms: List[str]
    # Always empty: failures are keyed by (test, platform) only
    job_type: str = ""


class ComparisonResult(BaseModel):
    base_revision: str
    compare_revision: str
    base_push_id: int
    compare_push_id: int
    new_failures: List[ComparisonFailure] = []
    fixed_failures: List[ComparisonFailure] = []
    still_failing: List[ComparisonFailure] = []


class SimilarJob(BaseModel):
    id: int
    job_type_name: str
    platform: str
    result: str
    state: str
    push_id: int
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None


class SimilarJobHistory(BaseModel):
    job_id: int
    job_type_name: str
    repo: str
    total_jobs: int
    pass_count: int
    fail_count: int
    pass_rate: float
    jobs: List[SimilarJob]
