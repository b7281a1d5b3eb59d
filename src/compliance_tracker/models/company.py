"""Company (tenant) and template upgrade models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance_tracker.models.base import Base, CreatedAtMixin, TimestampMixin, UTCDateTime, utc_now

if TYPE_CHECKING:
    from compliance_tracker.models.employee import Employee, Role
    from compliance_tracker.models.policy import Policy


class Company(Base, TimestampMixin):
    """Tenant boundary. Every policy, role and employee belongs to one."""

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)

    # Relationships
    policies: Mapped[list[Policy]] = relationship(back_populates="company")
    roles: Mapped[list[Role]] = relationship(back_populates="company")
    employees: Mapped[list[Employee]] = relationship(back_populates="company")


class TemplateUpgrade(Base, CreatedAtMixin):
    """Newer template version available for a policy type.

    Rows are published by the template catalogue; this service only reads them.
    """

    __tablename__ = "template_upgrades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    policy_type: Mapped[str] = mapped_column(String, nullable=False)
    current_version: Mapped[str] = mapped_column(String, nullable=False)
    available_version: Mapped[str] = mapped_column(String, nullable=False)
    notified_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)
    upgrade_completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
