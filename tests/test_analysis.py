"""
Analysis Tests
==============
Filter chain, group-by-test, revision comparison and similar-job history.
"""
import re

import pytest

from treeherder_cli.analysis.comparison import compare_failures, failure_keys
from treeherder_cli.analysis.filters import apply_filters, filter_for_options
from treeherder_cli.analysis.grouping import group_failures_by_test
from treeherder_cli.analysis.history import pass_rate, summarize_similar_jobs
from treeherder_cli.models.aggregates import SimilarJob
from treeherder_cli.models.job import ErrorLine, Job, JobWithLogs
from treeherder_cli.models.options import ReportOptions


def _job(job_id, platform="linux1804-64", result="testfailed", name="test-linux/opt-mochitest-1", **kwargs):
    return Job(
        id=job_id,
        job_type_name=name,
        job_type_symbol="M1",
        platform=platform,
        result=result,
        state="completed",
        **kwargs,
    )


def _with_errors(job, *tests):
    return JobWithLogs(
        job=job,
        errors=[
            ErrorLine(action="test_result", test=t, status="FAIL", message=f"{t} failed")
            for t in tests
        ],
    )


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------
class TestFilters:

    JOBS = [
        _job(1, result="testfailed", duration=400),
        _job(2, result="success", duration=50),
        _job(3, result="busted", platform="windows11-64", name="build-win64/opt"),
        _job(4, result="testfailed", failure_classification_id=4, duration=900),
        _job(5, result="retry", platform="macosx1015-64"),
    ]

    def test_default_keeps_failures_without_intermittents(self):
        assert [j.id for j in apply_filters(self.JOBS)] == [1, 3]

    def test_success_only(self):
        assert [j.id for j in apply_filters(self.JOBS, match_filter="success")] == [2]

    def test_all_keeps_everything_but_intermittent(self):
        assert [j.id for j in apply_filters(self.JOBS, match_filter="all")] == [1, 2, 3, 5]

    def test_include_intermittent(self):
        kept = apply_filters(self.JOBS, include_intermittent=True)
        assert [j.id for j in kept] == [1, 3, 4]

    def test_name_substring(self):
        kept = apply_filters(self.JOBS, match_filter="all", name_filter="build-")
        assert [j.id for j in kept] == [3]

    def test_platform_regex(self):
        kept = apply_filters(self.JOBS, match_filter="all", platform=re.compile(r"^(windows|macosx)"))
        assert [j.id for j in kept] == [3, 5]

    def test_duration_min_drops_unknown_durations(self):
        kept = apply_filters(self.JOBS, match_filter="all", duration_min=100, include_intermittent=True)
        assert [j.id for j in kept] == [1, 4]

    def test_filter_for_options(self):
        options = ReportOptions(input="abc", match_filter="all", platform="linux", duration_min=10)
        assert [j.id for j in filter_for_options(self.JOBS, options)] == [1, 2]


# ---------------------------------------------------------------------------
# Group by test
# ---------------------------------------------------------------------------
class TestGrouping:

    def test_sorted_by_platform_count_then_name(self):
        jobs = [
            _with_errors(_job(1, platform="linux64"), "test_a", "test_b", "test_c"),
            _with_errors(_job(2, platform="windows11-64"), "test_a"),
            _with_errors(_job(3, platform="macosx64"), "test_c"),
            _with_errors(_job(4, platform="linux64"), "test_b"),
        ]
        grouped = group_failures_by_test(jobs)

        assert [g.test_name for g in grouped] == ["test_a", "test_c", "test_b"]
        assert grouped[0].platforms == ["linux64", "windows11-64"]
        assert grouped[1].platforms == ["linux64", "macosx64"]
        # Duplicate platform is deduplicated, every hit is kept
        assert grouped[2].platforms == ["linux64"]
        assert [info.job_id for info in grouped[2].jobs] == [1, 4]

    def test_ignores_errors_without_test(self):
        job = JobWithLogs(job=_job(1), errors=[ErrorLine(action="test_result", status="FAIL", message="x")])
        assert group_failures_by_test([job]) == []

    def test_carries_subtest_and_message(self):
        job = JobWithLogs(
            job=_job(9, name="test-linux/opt-wpt-3"),
            errors=[ErrorLine(action="test_result", test="t", subtest="sub", status="FAIL", message="m")],
        )
        info = group_failures_by_test([job])[0].jobs[0]
        assert (info.job_id, info.job_type_name, info.subtest, info.message) == (
            9, "test-linux/opt-wpt-3", "sub", "m"
        )


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------
class TestComparison:

    def test_new_fixed_still(self):
        base = [
            _with_errors(_job(1, platform="linux64"), "test_a", "test_b"),
            _with_errors(_job(2, platform="windows11-64"), "test_a"),
        ]
        other = [
            _with_errors(_job(11, platform="linux64"), "test_b", "test_c"),
        ]
        result = compare_failures(base, other, "base", "other", 1, 2)

        assert [(f.test_name, f.platforms) for f in result.new_failures] == [
            ("test_a", ["linux64", "windows11-64"])
        ]
        assert [(f.test_name, f.platforms) for f in result.fixed_failures] == [("test_c", ["linux64"])]
        assert [(f.test_name, f.platforms) for f in result.still_failing] == [("test_b", ["linux64"])]
        assert all(f.job_type == "" for f in result.new_failures)
        assert (result.base_push_id, result.compare_push_id) == (1, 2)

    def test_same_test_on_other_platform_is_new(self):
        base = [_with_errors(_job(1, platform="windows11-64"), "test_a")]
        other = [_with_errors(_job(2, platform="linux64"), "test_a")]
        result = compare_failures(base, other, "b", "c", 1, 2)
        assert [f.platforms for f in result.new_failures] == [["windows11-64"]]
        assert [f.platforms for f in result.fixed_failures] == [["linux64"]]
        assert result.still_failing == []

    def test_identical_batches(self):
        jobs = [_with_errors(_job(1, platform="linux64"), "test_a", "test_b")]
        result = compare_failures(jobs, jobs, "r", "r", 1, 1)
        assert result.new_failures == []
        assert result.fixed_failures == []
        assert [f.test_name for f in result.still_failing] == ["test_a", "test_b"]

    def test_unknown_results_count_as_failures(self):
        jobs = [_with_errors(_job(1, result="unknown"), "test_a")]
        assert failure_keys(jobs) == {("test_a", "linux1804-64")}

    def test_success_jobs_never_contribute(self):
        jobs = [_with_errors(_job(1, result="success"), "test_a")]
        assert failure_keys(jobs) == set()

    def test_categories_are_disjoint(self):
        base = [_with_errors(_job(1, platform=p), "t1", "t2") for p in ("a", "b")]
        other = [_with_errors(_job(2, platform=p), "t2", "t3") for p in ("b", "c")]
        result = compare_failures(base, other, "x", "y", 1, 2)

        def keys(failures):
            return {(f.test_name, p) for f in failures for p in f.platforms}

        new, fixed, still = keys(result.new_failures), keys(result.fixed_failures), keys(result.still_failing)
        assert not (new & fixed) and not (new & still) and not (fixed & still)
        assert new | still == failure_keys(base)
        assert fixed | still == failure_keys(other)


# ---------------------------------------------------------------------------
# Similar history
# ---------------------------------------------------------------------------
def _similar(job_id, result):
    return SimilarJob(
        id=job_id,
        job_type_name="test-linux/opt-mochitest-1",
        platform="linux64",
        result=result,
        state="completed",
        push_id=1000 + job_id,
    )


@pytest.mark.parametrize("passed,total,expected", [(0, 0, 0.0), (7, 10, 70.0), (10, 10, 100.0), (0, 4, 0.0)])
def test_pass_rate(passed, total, expected):
    assert pass_rate(passed, total) == pytest.approx(expected)


def test_summarize_similar_jobs():
    results = ["success"] * 7 + ["testfailed", "testfailed", "busted"]
    jobs = [_similar(i, r) for i, r in enumerate(results)]
    history = summarize_similar_jobs(42, "mozilla-central", jobs)

    assert history.total_jobs == 10
    assert history.pass_count == 7
    assert history.fail_count == 3
    assert history.pass_rate == pytest.approx(70.0)
    assert history.job_type_name == "test-linux/opt-mochitest-1"
    assert history.repo == "mozilla-central"


def test_summarize_no_similar_jobs():
    history = summarize_similar_jobs(42, "try", [])
    assert history.total_jobs == 0
    assert history.pass_rate == 0.0
    assert history.job_type_name == ""
