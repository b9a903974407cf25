"""
Job Table Normalizer
====================
Converts the positional job table returned by `GET /jobs/?push_id=N` into
Job models.

Response shape:
    {
        "job_property_names": ["id", "job_type_name", ...],
        "results": [[123, "test-linux/opt-xpcshell", ...], ...]
    }

Column order is not stable across calls, so every field is resolved by name
through a RowAccessor built once per response.

Contract:
    - Required: id (int), job_type_name, job_type_symbol, platform, result,
      state (str). A row missing one, or carrying the wrong type, is skipped.
    - Optional: platform_option (str, default ""), duration (int),
      failure_classification_id (int). Absence or a wrong type yields the default.
    - Skipped rows are not logged; upstream schema drift is expected.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

from treeherder_cli.models.job import Job

_MISSING = object()

_REQUIRED_STR_FIELDS = ("job_type_name", "job_type_symbol", "platform", "result", "state")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RowAccessor:
    """Name-based lookup over positional rows sharing one schema."""

    def __init__(self, property_names: Sequence[str]) -> None:
        self._index: Dict[str, int] = {}
        for idx, name in enumerate(property_names):
            # First occurrence wins if upstream ever repeats a column
            self._index.setdefault(name, idx)

    def get(self, row: Sequence[Any], name: str) -> Any:
        idx = self._index.get(name)
        if idx is None or idx >= len(row):
            return _MISSING
        return row[idx]

    def get_str(self, row: Sequence[Any], name: str) -> Optional[str]:
        value = self.get(row, name)
        return value if isinstance(value, str) else None

    def get_uint(self, row: Sequence[Any], name: str) -> Optional[int]:
        value = self.get(row, name)
        if _is_int(value) and value >= 0:
            return value
        return None


def normalize_row(accessor: RowAccessor, row: Sequence[Any]) -> Optional[Job]:
    """Build a Job from one row, or None when a required field is unusable."""
    job_id = accessor.get_uint(row, "id")
    if job_id is None:
        return None

    values = {}
    for name in _REQUIRED_STR_FIELDS:
        value = accessor.get_str(row, name)
        if value is None:
            return None
        values[name] = value

    return Job(
        id=job_id,
        platform_option=accessor.get_str(row, "platform_option") or "",
        duration=accessor.get_uint(row, "duration"),
        failure_classification_id=accessor.get_uint(row, "failure_classification_id"),
        **values,
    )


def normalize_jobs(payload: Mapping[str, Any]) -> List[Job]:
    """Normalize a whole job-table response, dropping malformed rows."""
    names = payload.get("job_property_names")
    rows = payload.get("results")
    if not isinstance(names, list) or not isinstance(rows, list):
        return []

    accessor = RowAccessor(names)
    jobs: List[Job] = []
    for row in rows:
        if not isinstance(row, list):
            continue
        job = normalize_row(accessor, row)
        if job is not None:
            jobs.append(job)
    return jobs
