"""
Cache Service
=============
Directory-based store for re-querying a previous --fetch-logs run offline.

Layout:
    <root>/metadata.json          - CachedPushMetadata (pretty JSON)
    <root>/job_<id>/*.log         - logs written by the log-fetch branch

Contract:
    - save() only writes metadata.json; the job directories must already
      have been populated under the same root by the log-fetch branch.
    - load() raises CacheCorrupt if metadata.json is missing or unparsable.
    - search_cached_logs() walks the (already filtered) job list; a missing
      job directory is a warning and the job is skipped, an unreadable log
      file is CacheCorrupt.
    - Single writer by convention; no file locking.
"""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Union

from pydantic import ValidationError

from treeherder_cli.core.constants import LOG_SUFFIX, METADATA_FILENAME
from treeherder_cli.core.errors import CacheCorrupt
from treeherder_cli.models.cache import CachedPushMetadata
from treeherder_cli.models.job import Job, JobWithLogs, LogMatch
from treeherder_cli.services.log_store import job_dir_name, search_log_file

logger = logging.getLogger(__name__)


def metadata_path(cache_dir: Union[str, Path]) -> Path:
    return Path(cache_dir) / METADATA_FILENAME


def save_cache_metadata(cache_dir: Union[str, Path], metadata: CachedPushMetadata) -> Path:
    path = metadata_path(cache_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(metadata.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Cache metadata saved to %s (%d jobs)", path, len(metadata.jobs))
    return path


def load_cache_metadata(cache_dir: Union[str, Path]) -> CachedPushMetadata:
    path = metadata_path(cache_dir)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise CacheCorrupt(f"Cannot read cache metadata {path}: {exc}") from exc
    try:
        return CachedPushMetadata.model_validate_json(raw)
    except ValidationError as exc:
        raise CacheCorrupt(f"Cache metadata {path} is not valid: {exc}") from exc


def _search_job_dir(job_dir: Path, pattern: Pattern[str]) -> List[LogMatch]:
    matches: List[LogMatch] = []
    for log_path in sorted(job_dir.iterdir()):
        if not log_path.is_file() or log_path.suffix != LOG_SUFFIX:
            continue
        try:
            matches.extend(search_log_file(log_path, pattern, log_path.stem))
        except OSError as exc:
            raise CacheCorrupt(f"Cannot read cached log {log_path}: {exc}") from exc
    return matches


def search_cached_logs(
    cache_dir: Union[str, Path],
    jobs: Iterable[Job],
    pattern: Optional[Pattern[str]] = None,
) -> List[JobWithLogs]:
    root = Path(cache_dir)
    results: List[JobWithLogs] = []

    for job in jobs:
        job_dir = root / job_dir_name(job.id)
        if not job_dir.is_dir():
            logger.warning("Job directory not found: %s", job_dir)
            continue

        log_matches = _search_job_dir(job_dir, pattern) if pattern is not None else []
        results.append(JobWithLogs(job=job, log_matches=log_matches, log_dir=str(job_dir)))

    return results
