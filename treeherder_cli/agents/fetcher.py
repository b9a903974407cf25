"""
Bounded Fetcher
===============
Runs one async operation per item with at most `limit` in flight.

Contract:
    - Every item is attempted exactly once; one failing item never stops
      the others.
    - A failing item is dropped from the results and reported as a
      FetchEvent(ok=False) through on_event. Tasks themselves never log.
    - on_progress(done, total) fires once per finished item, success or not.
    - Results keep input order (asyncio.gather), minus the failures.
    - No timeout and no cancellation: a hung call stalls the batch.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class FetchEvent:
    """Outcome of one fetch inside a batch."""
    label: str
    ok: bool
    error: str = ""


EventCallback = Callable[[FetchEvent], None]
ProgressCallback = Callable[[int, int], None]


def log_event(event: FetchEvent) -> None:
    """Default event sink: failures become warnings on stderr."""
    if not event.ok:
        logger.warning("Fetch failed for %s: %s", event.label, event.error)


def describe_error(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


async def run_bounded(
    items: Iterable[T],
    operation: Callable[[T], Awaitable[R]],
    limit: int,
    label: Callable[[T], str] = str,
    on_event: Optional[EventCallback] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> List[R]:
    """
    Apply `operation` to every item with bounded concurrency.

    Parameters
    ----------
    items : Iterable[T]
        Inputs; consumed eagerly.
    operation : Callable[[T], Awaitable[R]]
        Per-item coroutine function. Any Exception it raises isolates that item.
    limit : int
        Maximum number of operations in flight.
    label : Callable[[T], str]
        Human-readable name of an item for FetchEvent.label.
    on_event, on_progress : optional callbacks
        See module docstring.

    Returns
    -------
    List[R]
        Results of the successful items, in input order.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    pending = list(items)
    total = len(pending)
    sink = on_event or log_event
    semaphore = asyncio.Semaphore(limit)
    done = 0

    async def _run_one(item: T):
        nonlocal done
        async with semaphore:
            try:
                result = await operation(item)
            except Exception as exc:
                event = FetchEvent(label=label(item), ok=False, error=describe_error(exc))
                ok = False
                result = None
            else:
                event = FetchEvent(label=label(item), ok=True)
                ok = True
        done += 1
        sink(event)
        if on_progress is not None:
            on_progress(done, total)
        return ok, result

    outcomes = await asyncio.gather(*(_run_one(item) for item in pending))
    return [result for ok, result in outcomes if ok]
