"""Overdue detection and severity triage for acknowledgement requests.

Everything here is a pure function of timestamps so it can be used on
both stored rows and ad-hoc values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

ONE_DAY = timedelta(days=1)

# Days overdue strictly above which an item is CRITICAL / HIGH
CRITICAL_AFTER_DAYS = 14
HIGH_AFTER_DAYS = 7


class Severity(str, Enum):
    """Triage level of an overdue acknowledgement."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class RequestState(str, Enum):
    """Derived lifecycle state of an acknowledgement request."""

    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class RequestStatus:
    """Derived state plus the independent escalation flag."""

    state: RequestState
    escalated: bool
    days_overdue: int | None
    severity: Severity | None


def is_overdue(due_date: datetime, completed_at: datetime | None, now: datetime) -> bool:
    """A request is overdue iff it is not completed and its due date has passed."""
    return completed_at is None and due_date < now


def days_overdue(due_date: datetime, now: datetime) -> int:
    """Whole days elapsed since the due date, floored (negative if not yet due)."""
    return math.floor((now - due_date) / ONE_DAY)


def classify_severity(due_date: datetime, now: datetime) -> Severity | None:
    """Triage an uncompleted request by how long it has been overdue.

    > 14 days is CRITICAL, 8..14 is HIGH, anything else overdue is MEDIUM.
    Returns None when the request is not overdue yet.
    """
    if not due_date < now:
        return None
    days = days_overdue(due_date, now)
    if days > CRITICAL_AFTER_DAYS:
        return Severity.CRITICAL
    if days > HIGH_AFTER_DAYS:
        return Severity.HIGH
    return Severity.MEDIUM


def request_state(
    due_date: datetime,
    completed_at: datetime | None,
    escalated_at: datetime | None,
    now: datetime,
) -> RequestStatus:
    """Derive the full status of a request at instant ``now``."""
    escalated = escalated_at is not None
    if completed_at is not None:
        return RequestStatus(RequestState.COMPLETED, escalated, None, None)
    if is_overdue(due_date, completed_at, now):
        return RequestStatus(
            RequestState.OVERDUE,
            escalated,
            days_overdue(due_date, now),
            classify_severity(due_date, now),
        )
    return RequestStatus(RequestState.PENDING, escalated, None, None)
