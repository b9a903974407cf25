"""
Perf Resource Decoder
=====================
The perfherder resource-usage artifact is either the payload itself or a
pointer to it:

    {"url": "https://.../perfherder-data-resource-usage.json"}   → PerfRedirect
    {"framework": {...}, "suites": [...]}                          → PerfPayload

Pointer shape is tried first; the caller follows a PerfRedirect with a
second fetch and decodes that body with decode_perf_payload().
"""
import json
from dataclasses import dataclass
from typing import Union

from pydantic import ValidationError

from treeherder_cli.models.perf import PerfherderData


@dataclass(frozen=True)
class PerfRedirect:
    url: str


@dataclass(frozen=True)
class PerfPayload:
    data: PerfherderData


PerfResource = Union[PerfRedirect, PerfPayload]


def decode_perf_payload(text: str) -> PerfherderData:
    """Decode the payload shape; raises ValueError when the body is not one."""
    try:
        return PerfherderData.model_validate_json(text)
    except ValidationError as exc:
        raise ValueError(f"Not a perfherder payload: {exc.error_count()} validation errors") from exc


def decode_perf_resource(text: str) -> PerfResource:
    """Classify a perf artifact body; raises ValueError when it is neither shape."""
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ValueError(f"Perf resource is not JSON: {exc}") from exc

    if isinstance(data, dict) and isinstance(data.get("url"), str):
        return PerfRedirect(url=data["url"])

    try:
        return PerfPayload(data=PerfherderData.model_validate(data))
    except ValidationError as exc:
        raise ValueError(f"Not a perfherder payload: {exc.error_count()} validation errors") from exc
