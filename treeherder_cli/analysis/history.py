"""
Similar-Job History
Pass/fail statistics over historically similar job executions.
"""
from typing import List

from treeherder_cli.core.constants import FAILED_RESULTS, RESULT_SUCCESS
from treeherder_cli.models.aggregates import SimilarJob, SimilarJobHistory


def pass_rate(pass_count: int, total: int) -> float:
    """Percentage of passing jobs; 0.0 when there are none."""
    if total == 0:
        return 0.0
    return pass_count / total * 100.0


def summarize_similar_jobs(job_id: int, repo: str, jobs: List[SimilarJob]) -> SimilarJobHistory:
    pass_count = sum(1 for j in jobs if j.result == RESULT_SUCCESS)
    fail_count = sum(1 for j in jobs if j.result in FAILED_RESULTS)
    total = len(jobs)

    return SimilarJobHistory(
        job_id=job_id,
        job_type_name=jobs[0].job_type_name if jobs else "",
        repo=repo,
        total_jobs=total,
        pass_count=pass_count,
        fail_count=fail_count,
        pass_rate=pass_rate(pass_count, total),
        jobs=jobs,
    )
