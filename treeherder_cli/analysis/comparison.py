"""
Revision Comparison
===================
Set diff of failures between a base and a compare revision.

A failure is the pair (test name, platform), drawn from every error of every
job whose result is not `success`. Then:

    new    = base - compare
    fixed  = compare - base
    still  = base & compare

Each set is regrouped by test name (sorted platforms, sorted test names) for
presentation. job_type is left empty.
"""
from typing import Dict, Iterable, List, Set, Tuple

from treeherder_cli.core.constants import RESULT_SUCCESS
from treeherder_cli.models.aggregates import ComparisonFailure, ComparisonResult
from treeherder_cli.models.job import JobWithLogs

FailureKey = Tuple[str, str]


def failure_keys(jobs: Iterable[JobWithLogs]) -> Set[FailureKey]:
    keys: Set[FailureKey] = set()
    for job_with_logs in jobs:
        if job_with_logs.job.result == RESULT_SUCCESS:
            continue
        for error in job_with_logs.errors:
            if error.test:
                keys.add((error.test, job_with_logs.job.platform))
    return keys


def regroup(keys: Iterable[FailureKey]) -> List[ComparisonFailure]:
    by_test: Dict[str, Set[str]] = {}
    for test, platform in keys:
        by_test.setdefault(test, set()).add(platform)
    return [
        ComparisonFailure(test_name=test, platforms=sorted(platforms))
        for test, platforms in sorted(by_test.items())
    ]


def compare_failures(
    base_jobs: Iterable[JobWithLogs],
    compare_jobs: Iterable[JobWithLogs],
    base_revision: str,
    compare_revision: str,
    base_push_id: int,
    compare_push_id: int,
) -> ComparisonResult:
    base = failure_keys(base_jobs)
    other = failure_keys(compare_jobs)

    return ComparisonResult(
        base_revision=base_revision,
        compare_revision=compare_revision,
        base_push_id=base_push_id,
        compare_push_id=compare_push_id,
        new_failures=regroup(base - other),
        fixed_failures=regroup(other - base),
        still_failing=regroup(base & other),
    )
