"""
Progress Indicator
tqdm bar on stderr; advances once per finished item.
"""
import sys
from typing import Optional, TextIO

from tqdm import tqdm


class NullProgress:
    def advance(self, done: int, total: int) -> None:
        pass

    def finish(self, message: str = "") -> None:
        pass


class ProgressBar:
    """Adapts run_bounded's (done, total) callback to a tqdm bar."""

    def __init__(self, message: str, stream: Optional[TextIO] = None, enabled: bool = True) -> None:
        self.bar = tqdm(
            desc=message,
            unit="job",
            file=stream or sys.stderr,
            disable=not enabled,
            leave=True,
        )

    def advance(self, done: int, total: int) -> None:
        if self.bar.total != total:
            self.bar.total = total
        self.bar.update(done - self.bar.n)

    def finish(self, message: str = "") -> None:
        if message:
            self.bar.set_description_str(message, refresh=False)
        self.bar.close()


def progress_factory(enabled: bool):
    """Return a callable (message) -> progress object."""
    def _make(message: str):
        return ProgressBar(message) if enabled else NullProgress()
    return _make
