"""
treeherder-cli
==============
Fetch, filter and summarize Treeherder CI results for a push.

Usage:
  treeherder-cli a13b9fc22101
  treeherder-cli "https://treeherder.mozilla.org/jobs?repo=try&revision=a13b9fc22101"
  treeherder-cli a13b9fc22101 --fetch-logs --pattern "ASSERTION" --cache-dir ./logs
  treeherder-cli --use-cache --cache-dir ./logs --pattern "leak"
  treeherder-cli a13b9fc22101 --compare 0b7c1e2d4f55 --json
  treeherder-cli --similar-history 123456789 --similar-count 100

Rendered output goes to stdout; logs, progress and watch status to stderr.
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx
from pydantic import ValidationError

from treeherder_cli.agents.orchestrator import ReportOrchestrator
from treeherder_cli.core import config
from treeherder_cli.core.errors import TreeherderCliError
from treeherder_cli.core.output_formatter import render
from treeherder_cli.models.options import ReportOptions
from treeherder_cli.utils.logging_config import setup_logging
from treeherder_cli.utils.progress import progress_factory

logger = logging.getLogger("treeherder_cli.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treeherder-cli",
        description="Fetch and summarize Treeherder CI results for a revision.",
    )
    parser.add_argument("input", nargs="?", help="Revision hash or Treeherder jobs URL")
    parser.add_argument("--lando-job-id", type=int, help="Resolve the revision from a Lando landing job")
    parser.add_argument("--repo", default=config.DEFAULT_REPO, help="Repository name (default: %(default)s)")

    filters = parser.add_argument_group("filters")
    filters.add_argument("--filter", help="Keep jobs whose job type name contains this text")
    filters.add_argument("--platform", help="Keep jobs whose platform matches this regex")
    filters.add_argument("--duration-min", type=int, help="Keep jobs that ran at least this many seconds")
    filters.add_argument(
        "--match-filter",
        choices=["failure", "success", "all"],
        default="failure",
        help="Which job results to keep (default: %(default)s)",
    )
    filters.add_argument(
        "--include-intermittent",
        action="store_true",
        help="Keep jobs classified as intermittent",
    )

    fetch = parser.add_argument_group("fetching")
    fetch.add_argument("--fetch-logs", action="store_true", help="Download every log of each job")
    fetch.add_argument("--pattern", help="Regex to search for in downloaded logs")
    fetch.add_argument("--download-artifacts", action="store_true", help="Download Taskcluster artifacts")
    fetch.add_argument("--artifact-pattern", help="Regex selecting artifact names to download")
    fetch.add_argument("--perf", action="store_true", help="Fetch perfherder resource usage data")

    cache = parser.add_argument_group("cache")
    cache.add_argument("--cache-dir", help="Directory for persistent logs, metadata and artifacts")
    cache.add_argument("--use-cache", action="store_true", help="Report from --cache-dir without network access")

    watch = parser.add_argument_group("watch")
    watch.add_argument("--watch", action="store_true", help="Poll until every job has completed")
    watch.add_argument(
        "--watch-interval",
        type=int,
        default=config.WATCH_INTERVAL,
        help="Seconds between polls (default: %(default)s)",
    )
    watch.add_argument("--notify", action="store_true", help="Desktop notification when watching ends")

    agg = parser.add_argument_group("aggregation")
    agg.add_argument("--group-by", choices=["test"], help="Group failures by test name")
    agg.add_argument("--compare", metavar="REVISION", help="Compare failures against another revision")
    agg.add_argument("--similar-history", type=int, metavar="JOB_ID", help="Pass/fail history of similar jobs")
    agg.add_argument(
        "--similar-count",
        type=int,
        default=config.SIMILAR_COUNT,
        help="How many similar jobs to fetch (default: %(default)s)",
    )

    out = parser.add_argument_group("output")
    out.add_argument("--json", dest="json_output", action="store_true", help="Emit JSON instead of markdown")
    out.add_argument(
        "--show-stack-traces",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Print stack traces under each job's errors",
    )
    verbosity = out.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    out.add_argument("--log-file", help="Also write logs to this file")
    return parser


def options_from_args(args: argparse.Namespace, automated: bool = False) -> ReportOptions:
    """Fold parsed flags and the automated-caller check into ReportOptions."""
    return ReportOptions(
        input=args.input,
        lando_job_id=args.lando_job_id,
        repo=args.repo,
        show_stack_traces=args.show_stack_traces,
        filter=args.filter,
        platform=args.platform,
        duration_min=args.duration_min,
        match_filter=args.match_filter,
        include_intermittent=args.include_intermittent,
        fetch_logs=args.fetch_logs,
        pattern=args.pattern,
        download_artifacts=args.download_artifacts,
        artifact_pattern=args.artifact_pattern,
        perf=args.perf,
        cache_dir=args.cache_dir,
        use_cache=args.use_cache,
        watch=args.watch,
        watch_interval=args.watch_interval,
        notify=args.notify,
        group_by=args.group_by,
        compare=args.compare,
        similar_history=args.similar_history,
        similar_count=args.similar_count,
        json_output=args.json_output or automated,
    )


def _log_level(args: argparse.Namespace) -> int:
    if args.verbose:
        return logging.DEBUG
    if args.quiet:
        return logging.ERROR
    return logging.INFO


def _print_watch_status(completed: int, running: int, pending: int) -> None:
    print(f"Jobs: {completed} completed, {running} running, {pending} pending", file=sys.stderr)


async def _run(options: ReportOptions, orchestrator: ReportOrchestrator) -> str:
    try:
        report = await orchestrator.run(options)
        return render(report, json_output=options.json_output, show_stack_traces=options.show_stack_traces)
    finally:
        await orchestrator.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=_log_level(args), log_file=args.log_file)

    try:
        options = options_from_args(args, automated=config.detect_automated_caller())
    except ValidationError as e:
        parser.print_usage(sys.stderr)
        for err in e.errors():
            field = "--" + "-".join(str(p) for p in err["loc"]).replace("_", "-")
            print(f"treeherder-cli: error: {field}: {err['msg']}", file=sys.stderr)
        return EXIT_USAGE

    interactive = sys.stderr.isatty() and not options.json_output
    orchestrator = ReportOrchestrator(
        on_status=_print_watch_status,
        progress_factory=progress_factory(interactive),
    )

    try:
        output = asyncio.run(_run(options, orchestrator))
    except TreeherderCliError as e:
        logger.error("%s", e)
        return EXIT_FAILURE
    except httpx.HTTPError as e:
        logger.error("HTTP request failed: %s", e)
        return EXIT_FAILURE

    sys.stdout.write(output)
    if not output.endswith("\n"):
        sys.stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
