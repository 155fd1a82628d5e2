# slotbook/notifications.py
"""
Fire-and-forget hooks for the notification dispatcher.

The booking core calls ``notify`` after a change has been committed. Delivery
(push, e-mail) lives elsewhere and registers a listener here; a listener that
raises is logged and otherwise ignored, the committed change stands.
"""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = "appointment.created"
APPOINTMENT_STATUS_CHANGED = "appointment.status_changed"
RESCHEDULE_PROPOSED = "reschedule.proposed"
RESCHEDULE_ACCEPTED = "reschedule.accepted"
RESCHEDULE_REJECTED = "reschedule.rejected"

Listener = Callable[[str, dict], Any]

# filled once at startup by the delivery side; requests only read it
_listeners: List[Listener] = []


def subscribe(listener: Listener) -> None:
    if listener not in _listeners:
        _listeners.append(listener)


def unsubscribe(listener: Listener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def notify(event: str, **payload: Any) -> None:
    logger.debug("notify %s %s", event, payload)
    for listener in list(_listeners):
        try:
            listener(event, payload)
        except Exception:
            logger.exception("Notification listener %r failed for %s", listener, event)
