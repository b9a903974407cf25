"""
Report Options
==============
Pydantic model carrying every user-facing switch, shared by the CLI and the
HTTP surface.

Validation happens in two places:
    - field validators reject values that are wrong on their own
      (negative counts, unknown match filter)
    - check_combination() enforces cross-flag rules and compiles regexes;
      it raises InvalidInput and must run before any network call.
"""
import re
from typing import Literal, Optional, Pattern

from pydantic import BaseModel, field_validator

from treeherder_cli.core import config
from treeherder_cli.core.errors import InvalidInput

MatchFilter = Literal["failure", "success", "all"]
GroupBy = Literal["test"]


def compile_pattern(value: Optional[str], flag: str) -> Optional[Pattern[str]]:
    """Compile a user-supplied regex, reporting the offending flag on failure."""
    if value is None:
        return None
    try:
        return re.compile(value)
    except re.error as exc:
        raise InvalidInput(f"Invalid regex for {flag}: {value!r} ({exc})") from exc


class ReportOptions(BaseModel):
    input: Optional[str] = None
    lando_job_id: Optional[int] = None
    repo: str = config.DEFAULT_REPO
    show_stack_traces: bool = True

    # Filter chain
    filter: Optional[str] = None
    platform: Optional[str] = None
    duration_min: Optional[int] = None
    match_filter: MatchFilter = "failure"
    include_intermittent: bool = False

    # Branches
    fetch_logs: bool = False
    pattern: Optional[str] = None
    download_artifacts: bool = False
    artifact_pattern: Optional[str] = None
    perf: bool = False

    # Cache
    cache_dir: Optional[str] = None
    use_cache: bool = False

    # Watch
    watch: bool = False
    watch_interval: int = config.WATCH_INTERVAL
    notify: bool = False

    # Aggregation
    group_by: Optional[GroupBy] = None
    compare: Optional[str] = None
    similar_history: Optional[int] = None
    similar_count: int = config.SIMILAR_COUNT

    json_output: bool = False

    @field_validator("duration_min", "watch_interval", "similar_count")
    @classmethod
    def _non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("must be >= 0")
        return v

    def check_combination(self) -> None:
        """Reject invalid flag combinations and bad regexes."""
        if self.input is not None and self.lando_job_id is not None:
            raise InvalidInput("INPUT and --lando-job-id are mutually exclusive")
        if (
            not self.use_cache
            and self.input is None
            and self.lando_job_id is None
            and self.similar_history is None
        ):
            raise InvalidInput(
                "INPUT (or --lando-job-id) is required when not using --use-cache or --similar-history"
            )
        if self.notify and not self.watch:
            raise InvalidInput("--notify requires --watch to be enabled")
        if self.watch and self.use_cache:
            raise InvalidInput("--watch cannot be used with --use-cache")
        if self.compare is not None and self.use_cache:
            raise InvalidInput("--compare cannot be used with --use-cache")
        if self.compare is not None and self.watch:
            raise InvalidInput("--compare cannot be used with --watch")
        if self.use_cache and not self.cache_dir:
            raise InvalidInput("--use-cache requires --cache-dir to be specified")

        self.platform_regex()
        self.pattern_regex()
        self.artifact_regex()

    def platform_regex(self) -> Optional[Pattern[str]]:
        return compile_pattern(self.platform, "--platform")

    def pattern_regex(self) -> Optional[Pattern[str]]:
        return compile_pattern(self.pattern, "--pattern")

    def artifact_regex(self) -> Optional[Pattern[str]]:
        return compile_pattern(self.artifact_pattern, "--artifact-pattern")
