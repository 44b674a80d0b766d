"""
auth/notify.py -- Non-critical notification hook.

AuthCore calls notify() after an operation has already succeeded (for
example a welcome mail after registration). Delivery is someone else's
problem: a Notifier may be slow or broken, and the primary operation must
not care. AuthCore wraps every call in notify_safely(), which logs failures
and never raises.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger("hotdeal.notify")


class Notifier(Protocol):
    def notify(self, email: str, event: str, context: dict) -> None: ...


class LogNotifier:
    """Default Notifier: records the intent to send, sends nothing."""

    def notify(self, email: str, event: str, context: dict) -> None:
        logger.info("Notification queued: event=%s recipient=%s", event, email)


def notify_safely(notifier: Notifier | None, email: str, event: str, context: dict | None = None) -> None:
    """Deliver through notifier, logging and discarding any failure."""
    if notifier is None:
        return
    try:
        notifier.notify(email, event, context or {})
    except Exception:
        logger.exception("Notification %s to %s failed; primary operation unaffected", event, email)
