"""
Job Filters
===========
The filter chain applied to a push's jobs before any per-job fetch.

Order:
    1. match filter     - failure (testfailed/busted) / success / all
    2. name filter      - substring of job_type_name
    3. platform filter  - regex search on platform
    4. duration filter  - known duration >= N seconds
    5. intermittent     - drop failure_classification_id == 4 unless included

Each step narrows the list; none of them reorders it.
"""
from typing import Iterable, List, Optional, Pattern

from treeherder_cli.core.constants import (
    FAILED_RESULTS,
    INTERMITTENT_CLASSIFICATION_ID,
    RESULT_SUCCESS,
)
from treeherder_cli.models.job import Job
from treeherder_cli.models.options import ReportOptions


def match_result(jobs: Iterable[Job], match_filter: str) -> List[Job]:
    if match_filter == "failure":
        return [j for j in jobs if j.result in FAILED_RESULTS]
    if match_filter == "success":
        return [j for j in jobs if j.result == RESULT_SUCCESS]
    return list(jobs)


def apply_filters(
    jobs: Iterable[Job],
    match_filter: str = "failure",
    name_filter: Optional[str] = None,
    platform: Optional[Pattern[str]] = None,
    duration_min: Optional[int] = None,
    include_intermittent: bool = False,
) -> List[Job]:
    filtered = match_result(jobs, match_filter)

    if name_filter:
        filtered = [j for j in filtered if name_filter in j.job_type_name]

    if platform is not None:
        filtered = [j for j in filtered if platform.search(j.platform)]

    if duration_min is not None:
        filtered = [j for j in filtered if j.duration is not None and j.duration >= duration_min]

    if not include_intermittent:
        filtered = [
            j for j in filtered if j.failure_classification_id != INTERMITTENT_CLASSIFICATION_ID
        ]

    return filtered


def filter_for_options(jobs: Iterable[Job], options: ReportOptions) -> List[Job]:
    return apply_filters(
        jobs,
        match_filter=options.match_filter,
        name_filter=options.filter,
        platform=options.platform_regex(),
        duration_min=options.duration_min,
        include_intermittent=options.include_intermittent,
    )
