"""Acknowledgement request, audit event and escalation models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance_tracker.models.base import Base, CreatedAtMixin, TimestampMixin, UTCDateTime, utc_now

if TYPE_CHECKING:
    from compliance_tracker.models.employee import Employee
    from compliance_tracker.models.policy import PolicyVersion


class TriggerType(str, Enum):
    """Why an acknowledgement request was issued."""

    ONBOARD = "ONBOARD"
    PERIODIC = "PERIODIC"
    MANUAL = "MANUAL"


class AcknowledgementRequest(Base, TimestampMixin):
    """Obligation for one employee to acknowledge one policy version.

    Overdue is never stored: it is derived from due_date and completed_at.
    completed_at and escalated_at are never cleared once set.
    """

    __tablename__ = "acknowledgement_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    policy_version_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("policy_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trigger_type: Mapped[str] = mapped_column(String, nullable=False)
    due_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    escalated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "trigger_type IN ('ONBOARD', 'PERIODIC', 'MANUAL')",
            name="ack_request_trigger_type_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        back_populates="acknowledgement_requests", lazy="selectin"
    )
    policy_version: Mapped[PolicyVersion] = relationship(
        back_populates="acknowledgement_requests", lazy="selectin"
    )
    events: Mapped[list[AcknowledgementEvent]] = relationship(back_populates="request")
    escalations: Mapped[list[AlertEscalation]] = relationship(back_populates="request")


class AcknowledgementEvent(Base, CreatedAtMixin):
    """Immutable audit record of a completed acknowledgement."""

    __tablename__ = "acknowledgement_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # One event per request
    request_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("acknowledgement_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    policy_version_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("policy_versions.id", ondelete="CASCADE"),
        nullable=False,
    )
    acknowledged_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String, nullable=True)

    # Relationships
    request: Mapped[AcknowledgementRequest] = relationship(back_populates="events")


class AlertEscalation(Base, CreatedAtMixin):
    """An overdue acknowledgement raised to a responsible party."""

    __tablename__ = "alert_escalations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("acknowledgement_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    escalated_to: Mapped[str] = mapped_column(String, nullable=False)
    escalated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Relationships
    request: Mapped[AcknowledgementRequest] = relationship(back_populates="escalations")
