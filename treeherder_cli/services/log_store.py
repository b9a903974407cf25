"""
Log Store
=========
Per-job log persistence and regex search.

Layout (shared with the cache, see cache_service.py):
    <root>/job_<id>/<log-name>.log

Storage is either ephemeral (a temporary directory removed by cleanup() or
at interpreter exit) or persistent (a user-supplied cache root that later
feeds --use-cache).

Matches keep the full line text; truncation is a rendering concern.
"""
import logging
import re
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional, Pattern, Tuple, Union

from treeherder_cli.core.constants import JOB_DIR_PREFIX, LOG_SUFFIX
from treeherder_cli.models.job import LogMatch

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[\\/\x00]")


def job_dir_name(job_id: int) -> str:
    return f"{JOB_DIR_PREFIX}{job_id}"


def log_filename(log_name: str) -> str:
    """`<log-name>.log`, with path separators replaced so the file stays in its job dir."""
    safe = _UNSAFE_NAME_CHARS.sub("_", log_name).strip() or "unnamed"
    if safe in (".", ".."):
        safe = safe.replace(".", "_")
    return f"{safe}{LOG_SUFFIX}"


def iter_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (1-based line number, line) splitting on \\n only, dropping a trailing \\r."""
    if not text:
        return
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for idx, line in enumerate(lines, start=1):
        yield idx, line[:-1] if line.endswith("\r") else line


def search_text(text: str, pattern: Pattern[str], log_name: str) -> List[LogMatch]:
    return [
        LogMatch(log_name=log_name, line_number=number, line_content=line)
        for number, line in iter_lines(text)
        if pattern.search(line)
    ]


def search_log_file(path: Path, pattern: Pattern[str], log_name: Optional[str] = None) -> List[LogMatch]:
    """Scan one saved log file. Raises OSError when the file cannot be read."""
    text = Path(path).read_text(encoding="utf-8", errors="replace")
    return search_text(text, pattern, log_name or Path(path).stem)


def save_log(job_dir: Path, log_name: str, content: str) -> Path:
    log_path = job_dir / log_filename(log_name)
    log_path.write_text(content, encoding="utf-8")
    return log_path


class LogStorage:
    """
    Root directory that receives one job_<id>/ subdirectory per job.

    Usage:
        storage = LogStorage.ephemeral()          # or LogStorage.persistent("cache/")
        job_dir = storage.job_dir(1234)
        ...
        storage.cleanup()                         # no-op for persistent roots
    """

    def __init__(self, root: Union[str, Path], ephemeral: bool = False, _tempdir=None) -> None:
        self.root = Path(root)
        self.is_ephemeral = ephemeral
        self._tempdir = _tempdir

    @classmethod
    def persistent(cls, root: Union[str, Path]) -> "LogStorage":
        path = Path(root)
        path.mkdir(parents=True, exist_ok=True)
        return cls(path, ephemeral=False)

    @classmethod
    def ephemeral(cls) -> "LogStorage":
        tempdir = tempfile.TemporaryDirectory(prefix="treeherder-logs-")
        return cls(tempdir.name, ephemeral=True, _tempdir=tempdir)

    def job_dir(self, job_id: int) -> Path:
        path = self.root / job_dir_name(job_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def cleanup(self) -> None:
        if self._tempdir is not None:
            logger.debug("Removing temporary log directory %s", self.root)
            self._tempdir.cleanup()
            self._tempdir = None
