"""
Group-by-Test
=============
Reduces a list of JobWithLogs to one entry per failing test name.

Rules:
    - Errors without a test name are ignored.
    - platforms is the sorted, deduplicated set of platforms the test hit.
    - Groups sort by platform count, descending; ties by test name, ascending.
"""
from typing import Dict, Iterable, List

from treeherder_cli.models.aggregates import GroupedJobInfo, GroupedTestFailure
from treeherder_cli.models.job import JobWithLogs


def group_failures_by_test(jobs: Iterable[JobWithLogs]) -> List[GroupedTestFailure]:
    by_test: Dict[str, List[GroupedJobInfo]] = {}

    for job_with_logs in jobs:
        job = job_with_logs.job
        for error in job_with_logs.errors:
            if not error.test:
                continue
            by_test.setdefault(error.test, []).append(
                GroupedJobInfo(
                    job_id=job.id,
                    platform=job.platform,
                    job_type_name=job.job_type_name,
                    subtest=error.subtest,
                    message=error.message,
                )
            )

    grouped = [
        GroupedTestFailure(
            test_name=test_name,
            platforms=sorted({info.platform for info in infos}),
            jobs=infos,
        )
        for test_name, infos in by_test.items()
    ]
    grouped.sort(key=lambda g: (-len(g.platforms), g.test_name))
    return grouped
