"""
Errors
======
Exception taxonomy shared by the CLI, the service surface and the pipeline.

    InvalidInput        - bad URL, bad regex, bad option combination.
                          Raised before any network call.
    UpstreamUnexpected  - an upstream answer the pipeline cannot use
                          (no push, id mismatch, wrong shape).
    NotLanded           - landing job exists but has not landed.
    MissingCommitId     - landing job landed without a commit id.
    CacheCorrupt        - metadata.json or a cached log is missing/unreadable.

Per-item fetch failures inside a batch are not exceptions at this level;
they surface as FetchEvent records (see agents/fetcher.py).
"""


class TreeherderCliError(Exception):
    """Base class for every fatal pipeline error."""


class InvalidInput(TreeherderCliError):
    pass


class UpstreamUnexpected(TreeherderCliError):
    pass


class NotLanded(UpstreamUnexpected):
    def __init__(self, job_id: int, status: str) -> None:
        super().__init__(
            f"Lando job {job_id} has not landed yet (status: {status}). "
            "Only LANDED jobs have commit IDs."
        )
        self.job_id = job_id
        self.status = status


class MissingCommitId(UpstreamUnexpected):
    def __init__(self, job_id: int) -> None:
        super().__init__(f"Lando job {job_id} is marked as LANDED but has no commit_id")
        self.job_id = job_id


class CacheCorrupt(TreeherderCliError):
    pass
