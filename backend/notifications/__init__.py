"""
Hotel alert pipeline.

This module handles:
- Matching active preferences against room inventory (matching run)
- Scoring and classifying the best new match per preference
- Sending individual and digest emails via Resend (dispatch run)
- Tracking delivery status and pruning old sent notifications
"""

from .run_matching import run_matching
from .process_notification_queue import run_dispatch

__all__ = [
    'run_matching',
    'run_dispatch',
]
