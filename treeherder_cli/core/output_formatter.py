"""
Output Formatter
================
Turns report models into the text printed on stdout.

Contract:
  - No I/O, no environment reads: same report model in, same string out.
  - Truncation happens here and only here; captured data stays full length.

Two renderings per report model:
  - JSON      - pretty-printed model dump (what automated callers parse)
  - Markdown  - human summary with pipe tables
"""
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel

from treeherder_cli.core.constants import FAILED_RESULTS, RESULT_UNKNOWN, STACK_TRACE_MARKER, STATE_COMPLETED
from treeherder_cli.models.aggregates import ComparisonFailure, ComparisonResult, SimilarJobHistory
from treeherder_cli.models.job import ErrorLine
from treeherder_cli.models.reports import ArtifactReport, GroupedReport, PerfReport, PushReport

# ---------------------------------------------------------------------------
# Display limits
# ---------------------------------------------------------------------------
MESSAGE_WIDTH = 60
GROUPED_MESSAGE_WIDTH = 50
MATCH_LINE_WIDTH = 100
MAX_MATCHES_SHOWN = 10


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _cell(value) -> str:
    text = "-" if value is None or value == "" else str(value)
    return text.replace("|", "\\|").replace("\n", " ")


def _table(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("---" for _ in headers) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(_cell(v) for v in row) + " |")
    return "\n".join(lines)


def _header(title: str, revision: str, push_id: int) -> List[str]:
    return [f"# {title}", "", f"**Revision:** `{revision}`", f"**Push ID:** {push_id}", ""]


def truncate(text: str, width: int) -> str:
    return text[:width]


def message_summary(message: Optional[str], width: int = MESSAGE_WIDTH) -> str:
    """The part of an error message before any stack trace, cut to width."""
    if not message:
        return "-"
    head = message.split(STACK_TRACE_MARKER, 1)[0]
    return truncate(head.strip(), width) or "-"


def stack_trace(error: ErrorLine) -> Optional[str]:
    """Explicit stack, else whatever follows "Stack trace:" in the message."""
    if error.stack:
        return error.stack
    if error.message and STACK_TRACE_MARKER in error.message:
        return error.message.split(STACK_TRACE_MARKER, 1)[1]
    return None


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------
def format_json(report: BaseModel) -> str:
    return report.model_dump_json(indent=2)


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------
def format_push_markdown(report: PushReport, show_stack_traces: bool = True) -> str:
    out = _header("Treeherder Test Results Summary", report.revision, report.push_id)
    jobs = report.jobs

    if not jobs:
        out.append("No jobs found matching criteria!")
        return "\n".join(out) + "\n"

    failed = sum(
        1 for j in jobs if j.job.state == STATE_COMPLETED and j.job.result in FAILED_RESULTS
    )
    unknown = sum(1 for j in jobs if j.job.result == RESULT_UNKNOWN)
    if failed:
        out.append(f"## Failed Jobs ({failed} failures)")
    elif unknown:
        out.append(f"## Jobs ({len(jobs)} total, {unknown} pending/running)")
    else:
        out.append(f"## Jobs ({len(jobs)})")
    out.append("")

    out.append(_table(
        ["Job ID", "Job Type", "Platform", "Result", "Errors"],
        ([j.job.id, j.job.job_type_name, j.job.platform, j.job.result, len(j.errors)] for j in jobs),
    ))
    out.append("")

    for entry in jobs:
        job = entry.job
        out.append(f"### {job.job_type_name} - {job.platform}")
        out.append(f"ID: {job.id} | Symbol: {job.job_type_symbol} | Result: {job.result}")
        if entry.log_dir:
            out.append(f"Logs: {entry.log_dir}")

        if entry.errors:
            out.append("")
            out.append("**Errors:**")
            out.append("")
            out.append(_table(
                ["Test", "Subtest", "Status", "Message"],
                ([e.test, e.subtest, e.status, message_summary(e.message)] for e in entry.errors),
            ))
            if show_stack_traces:
                for error in entry.errors:
                    trace = stack_trace(error)
                    if trace is None:
                        continue
                    out.append("")
                    out.append(f"Stack trace for {error.test or 'unknown'}:")
                    out.extend(f"    {line.strip()}" for line in trace.splitlines() if line.strip())
        elif not report.fetch_logs:
            out.append("No error summary available")

        if report.fetch_logs and entry.log_matches:
            out.append("")
            out.append(f"**Pattern Matches** ({len(entry.log_matches)} matches):")
            for match in entry.log_matches[:MAX_MATCHES_SHOWN]:
                out.append(
                    f"    {match.log_name}:{match.line_number} "
                    f"{truncate(match.line_content, MATCH_LINE_WIDTH)}"
                )
            hidden = len(entry.log_matches) - MAX_MATCHES_SHOWN
            if hidden > 0:
                out.append(f"    ... and {hidden} more matches (see log files)")
        out.append("")

    if report.storage_root:
        if report.storage_ephemeral:
            out.append(f"Logs are stored in temporary directory: {report.storage_root}")
            out.append("The directory will be automatically cleaned up when the program exits.")
        else:
            if report.metadata_path:
                out.append(f"Metadata saved to: {report.metadata_path}")
            out.append(f"Logs are stored persistently in: {report.storage_root}")
            out.append(f"Use --use-cache --cache-dir {report.storage_root} to query these logs later.")

    return "\n".join(out) + "\n"


def format_grouped_markdown(report: GroupedReport) -> str:
    out = _header("Treeherder Test Results - Grouped by Test", report.revision, report.push_id)

    if not report.grouped_failures:
        out.append("No test failures found!")
        return "\n".join(out) + "\n"

    out.append(f"## Test Failures ({len(report.grouped_failures)} unique tests)")
    out.append("")
    for failure in report.grouped_failures:
        out.append(f"### {failure.test_name}")
        out.append(
            f"Affected on {len(failure.platforms)} platforms: {', '.join(failure.platforms)}"
        )
        out.append("")
        out.append(_table(
            ["Platform", "Job", "Subtest", "Message"],
            (
                [info.platform, info.job_type_name, info.subtest,
                 truncate(info.message, GROUPED_MESSAGE_WIDTH) if info.message else None]
                for info in failure.jobs
            ),
        ))
        out.append("")

    return "\n".join(out) + "\n"


def _failure_table(failures: List[ComparisonFailure]) -> str:
    return _table(["Test", "Platforms"], ([f.test_name, ", ".join(f.platforms)] for f in failures))


def format_comparison_markdown(result: ComparisonResult) -> str:
    out = [
        "# Treeherder Comparison Results",
        "",
        f"**Base revision:** `{result.base_revision}` (push {result.base_push_id})",
        f"**Comparing to:** `{result.compare_revision}` (push {result.compare_push_id})",
        "",
        _table(
            ["Category", "Count"],
            [
                ["New Failures", len(result.new_failures)],
                ["Fixed", len(result.fixed_failures)],
                ["Still Failing", len(result.still_failing)],
            ],
        ),
        "",
    ]

    if result.new_failures:
        out.append(f"## New Failures ({len(result.new_failures)} tests)")
        out.append("These tests are now failing but passed in the comparison revision:")
        out.append("")
        out.append(_failure_table(result.new_failures))
    else:
        out.append("## New Failures: None!")
    out.append("")

    if result.fixed_failures:
        out.append(f"## Fixed Failures ({len(result.fixed_failures)} tests)")
        out.append("These tests were failing but now pass:")
        out.append("")
        out.append(_failure_table(result.fixed_failures))
    else:
        out.append("## Fixed Failures: None")
    out.append("")

    if result.still_failing:
        out.append(f"## Still Failing ({len(result.still_failing)} tests)")
        out.append("These tests fail in both revisions:")
        out.append("")
        out.append(_failure_table(result.still_failing))
        out.append("")

    return "\n".join(out) + "\n"


def format_perf_markdown(report: PerfReport) -> str:
    out = _header("Performance Data", report.revision, report.push_id)
    with_data = [j for j in report.jobs if j.perf_data is not None]

    if not with_data:
        out.append("No performance data available for selected jobs")
        return "\n".join(out) + "\n"

    for job_perf in with_data:
        perf = job_perf.perf_data
        out.append(f"### {job_perf.job_type_name}")
        out.append(f"Platform: {job_perf.platform} | Job ID: {job_perf.job_id}")
        out.append(f"Framework: {perf.framework.name}")
        out.append("")
        rows = [
            [suite.name, subtest.name, f"{subtest.value:.2f}"]
            for suite in perf.suites
            for subtest in suite.subtests
        ]
        if rows:
            out.append(_table(["Suite", "Metric", "Value"], rows))
            out.append("")

    return "\n".join(out) + "\n"


def format_artifact_markdown(report: ArtifactReport) -> str:
    return "\n".join([
        "## Artifacts Downloaded",
        "",
        f"**Revision:** `{report.revision}`",
        f"**Output directory:** `{report.artifact_dir}`",
        f"**Total files:** {report.total_files}",
    ]) + "\n"


def format_similar_history_markdown(history: SimilarJobHistory) -> str:
    out = [
        "# Similar Job History",
        "",
        f"**Job ID:** {history.job_id}",
        f"**Job Type:** {history.job_type_name or '-'}",
        f"**Repository:** {history.repo}",
        f"**Total Jobs:** {history.total_jobs}",
        f"**Pass Rate:** {history.pass_rate:.1f}% "
        f"({history.pass_count} pass, {history.fail_count} fail)",
        "",
        "## Recent Results",
        "",
        _table(
            ["Push ID", "Result", "Platform"],
            ([job.push_id, job.result, job.platform] for job in history.jobs),
        ),
    ]
    return "\n".join(out) + "\n"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def render(report: BaseModel, json_output: bool = False, show_stack_traces: bool = True) -> str:
    """Render any report model produced by the orchestrator."""
    if json_output:
        return format_json(report)
    if isinstance(report, PushReport):
        return format_push_markdown(report, show_stack_traces)
    if isinstance(report, GroupedReport):
        return format_grouped_markdown(report)
    if isinstance(report, ComparisonResult):
        return format_comparison_markdown(report)
    if isinstance(report, PerfReport):
        return format_perf_markdown(report)
    if isinstance(report, ArtifactReport):
        return format_artifact_markdown(report)
    if isinstance(report, SimilarJobHistory):
        return format_similar_history_markdown(report)
    raise TypeError(f"No renderer for {type(report).__name__}")
