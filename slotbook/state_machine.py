# slotbook/state_machine.py
"""
Appointment lifecycle.

    pending ──confirm──▶ confirmed ──complete──▶ completed
       │                    │
       └──────cancel────────┴──────▶ cancelled

A reschedule request moves a pending or confirmed appointment to
``pending`` (awaiting reschedule confirmation). Accepting it confirms the
appointment at the new time; rejecting it restores the status it had before.

``rescheduled`` is written by older merchant tooling when a time was changed
directly. Nothing here enters it, but it is honoured as a source state and
behaves like ``confirmed``.
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from slotbook.errors import InvalidTransition


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    rescheduled = "rescheduled"


class AppointmentEvent(str, Enum):
    confirm = "confirm"
    cancel = "cancel"
    complete = "complete"
    request_reschedule = "request_reschedule"
    accept_reschedule = "accept_reschedule"
    reject_reschedule = "reject_reschedule"


TERMINAL = frozenset({AppointmentStatus.cancelled, AppointmentStatus.completed})

# statuses whose time is held on the business's day
ACTIVE = frozenset({AppointmentStatus.pending, AppointmentStatus.confirmed, AppointmentStatus.rescheduled})

S = AppointmentStatus
E = AppointmentEvent

TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentEvent], AppointmentStatus] = {
    (S.pending, E.confirm): S.confirmed,
    (S.rescheduled, E.confirm): S.confirmed,

    (S.pending, E.cancel): S.cancelled,
    (S.confirmed, E.cancel): S.cancelled,
    (S.rescheduled, E.cancel): S.cancelled,

    (S.confirmed, E.complete): S.completed,
    (S.rescheduled, E.complete): S.completed,

    (S.pending, E.request_reschedule): S.pending,
    (S.confirmed, E.request_reschedule): S.pending,
    (S.rescheduled, E.request_reschedule): S.pending,

    (S.pending, E.accept_reschedule): S.confirmed,
}


def next_status(
    current: AppointmentStatus,
    event: AppointmentEvent,
    awaiting_reschedule: bool = False,
    prior: Optional[AppointmentStatus] = None,
) -> AppointmentStatus:
    """Target status for ``event`` or InvalidTransition.

    ``awaiting_reschedule`` tells whether a reschedule request is pending
    against the appointment; ``prior`` is the status recorded on that
    request, needed to undo it on rejection.
    """
    current = AppointmentStatus(current)
    event = AppointmentEvent(event)

    if event in (E.accept_reschedule, E.reject_reschedule):
        if not awaiting_reschedule or current != S.pending:
            raise InvalidTransition(current.value, event.value, "No reschedule is awaiting confirmation")
        if event == E.reject_reschedule:
            if prior is None or AppointmentStatus(prior) in TERMINAL:
                raise InvalidTransition(current.value, event.value, "Unknown status to restore")
            return AppointmentStatus(prior)

    # merchant confirmation would skip the negotiation
    if event == E.confirm and awaiting_reschedule:
        raise InvalidTransition(current.value, event.value, "A reschedule is awaiting confirmation")

    target = TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidTransition(current.value, event.value.replace("_", " "))
    return target
