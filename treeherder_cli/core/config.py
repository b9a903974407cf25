"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    TREEHERDER_API_URL   - Treeherder REST root (default: production instance)
    TASKCLUSTER_API_URL  - Taskcluster queue root used for artifacts
    LANDO_API_URL        - Lando root used to resolve landing jobs
    TREEHERDER_REPO      - Default repository name (default: try)
    HTTP_TIMEOUT         - Per-request timeout in seconds (default: none)
    WATCH_INTERVAL       - Default --watch polling interval (default: 300)
    SIMILAR_COUNT        - Default --similar-count (default: 50)
    USER_AGENT           - User-Agent header sent upstream
    API_HOST             - Bind address for the report API (default: 127.0.0.1)
    API_PORT             - Port for the report API (default: 8000)

Timeout Philosophy:
    No timeout is applied unless HTTP_TIMEOUT is set. A hung upstream call
    stalls its batch; nothing in the fetch layer cancels it.
"""
import os
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

TREEHERDER_API_URL = os.getenv("TREEHERDER_API_URL", "https://treeherder.mozilla.org/api").rstrip("/")
TASKCLUSTER_API_URL = os.getenv(
    "TASKCLUSTER_API_URL", "https://firefox-ci-tc.services.mozilla.com/api/queue/v1"
).rstrip("/")
LANDO_API_URL = os.getenv("LANDO_API_URL", "https://api.lando.services.mozilla.com").rstrip("/")

DEFAULT_REPO = os.getenv("TREEHERDER_REPO", "try")
WATCH_INTERVAL = int(os.getenv("WATCH_INTERVAL", 300))
SIMILAR_COUNT = int(os.getenv("SIMILAR_COUNT", 50))
USER_AGENT = os.getenv("USER_AGENT", "treeherder-cli")

API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", 8000))


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    return float(raw)


HTTP_TIMEOUT = _parse_timeout(os.getenv("HTTP_TIMEOUT"))

# Set by coding agents and similar automated callers; any of them forces JSON output.
AUTOMATED_CALLER_ENV_VARS = ("CLAUDECODE", "CODEX_SANDBOX", "GEMINI_CLI", "OPENCODE")


def detect_automated_caller(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when the process runs under an automated caller.

    Called once at startup; the answer is folded into the resolved options.
    """
    env = os.environ if environ is None else environ
    return any(name in env for name in AUTOMATED_CALLER_ENV_VARS)
