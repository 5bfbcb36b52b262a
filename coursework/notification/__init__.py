"""Outbound student notifications."""

__all__ = [
    "DispatchResult",
    "LoggingNotifier",
    "Notifier",
    "dispatch_pending",
]

from .dispatch import dispatch_pending
from .notifier import DispatchResult, LoggingNotifier, Notifier
