"""
Error logging utility for the alert pipeline.

Writes each error to its own timestamped report file for later debugging.
"""

import os
from datetime import datetime
from typing import Any

DEFAULT_LOG_DIR = os.path.join(os.path.dirname(__file__), "logs")


def log_notification_error(
    error_type: str, error_message: str, context: dict[str, Any] | None = None
) -> str:
    """
    Log a pipeline error to a timestamped file.

    Args:
        error_type: Stage that failed ('matching', 'queuing', 'sending', 'cleanup', 'preferences', 'data')
        error_message: The error message
        context: Optional dictionary with additional context (preference_id, user_id, etc.)

    Returns:
        Path to the log file created
    """
    log_dir = os.getenv("NOTIFICATION_LOG_DIR", DEFAULT_LOG_DIR)
    os.makedirs(log_dir, exist_ok=True)

    # Microseconds keep files from concurrent matching workers apart
    now = datetime.now()
    timestamp = now.strftime("%Y%m%d_%H%M%S_%f")
    filename = os.path.join(log_dir, f"{error_type}_error_{timestamp}.txt")

    with open(filename, "w", encoding="utf-8") as f:
        f.write(f"Hotel Alert Error Report - {now}\n")
        f.write("=" * 60 + "\n\n")
        f.write(f"Error Type: {error_type}\n")
        f.write(f"Error Message: {error_message}\n\n")

        if context:
            f.write("Context:\n")
            f.write("-" * 60 + "\n")
            for key, value in context.items():
                f.write(f"{key}: {value}\n")

    return filename
