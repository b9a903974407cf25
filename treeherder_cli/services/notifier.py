"""
Notifier
Desktop notification for --watch --notify. Delivery goes through
`notify-send` when it is installed; failures are logged, never raised.
"""
import logging
import shutil
import subprocess

logger = logging.getLogger(__name__)


def send_notification(title: str, message: str) -> bool:
    """Return True when the notification was handed to the desktop."""
    binary = shutil.which("notify-send")
    if binary is None:
        logger.warning("notify-send not available; notification skipped: %s - %s", title, message)
        return False
    try:
        subprocess.run([binary, title, message], check=True, capture_output=True, timeout=10)
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Failed to send notification: %s", e)
        return False
    return True
