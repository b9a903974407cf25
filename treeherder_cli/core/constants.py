"""
Constants
Centralised storage for job result names, concurrency caps and cache layout.
"""
RESULT_SUCCESS = "success"
RESULT_TESTFAILED = "testfailed"
RESULT_BUSTED = "busted"
RESULT_UNKNOWN = "unknown"
FAILED_RESULTS = frozenset({RESULT_TESTFAILED, RESULT_BUSTED})

STATE_PENDING = "pending"
STATE_RUNNING = "running"
STATE_COMPLETED = "completed"

# failure_classification_id for "intermittent"
INTERMITTENT_CLASSIFICATION_ID = 4

LANDED_STATUS = "LANDED"

# Bounded fan-out caps per operation
DETAIL_CONCURRENCY = 10
LOG_CONCURRENCY = 5
PERF_CONCURRENCY = 5
ARTIFACT_CONCURRENCY = 3

# On-disk cache layout
METADATA_FILENAME = "metadata.json"
JOB_DIR_PREFIX = "job_"
LOG_SUFFIX = ".log"

PERF_ARTIFACT_NAME = "public/test_info/perfherder-data-resource-usage.json"
STACK_TRACE_MARKER = "Stack trace:"
