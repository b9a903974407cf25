"""
Error Summary Parser
====================
Parses NDJSON "errorsummary" logs into ErrorLine models.

Each line is decoded on its own. Only `test_result` records with status
exactly `FAIL` are kept; a line that is not JSON, or not the expected shape,
is dropped without affecting its neighbours.
"""
import json
from typing import List

from pydantic import ValidationError

from treeherder_cli.models.job import ErrorLine, LogReference

_ACTION_TEST_RESULT = "test_result"
_STATUS_FAIL = "FAIL"


def is_error_summary(log_ref: LogReference) -> bool:
    """Heuristic: the name mentions error/summary or the URL is an errorsummary."""
    name = log_ref.name.lower()
    return "error" in name or "summary" in name or "errorsummary" in log_ref.url.lower()


def parse_error_line(line: str):
    """Decode one NDJSON line; returns None when it is not a usable record."""
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return ErrorLine.model_validate(data)
    except ValidationError:
        return None


def parse_error_summary(text: str) -> List[ErrorLine]:
    errors: List[ErrorLine] = []
    for line in text.splitlines():
        record = parse_error_line(line)
        if record is None:
            continue
        if record.action == _ACTION_TEST_RESULT and record.status == _STATUS_FAIL:
            errors.append(record)
    return errors
