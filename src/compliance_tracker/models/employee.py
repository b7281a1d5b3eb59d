"""Role, employee and assignment models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance_tracker.models.base import Base, TimestampMixin, UTCDateTime, utc_now

if TYPE_CHECKING:
    from compliance_tracker.models.acknowledgement import AcknowledgementRequest
    from compliance_tracker.models.company import Company
    from compliance_tracker.models.policy import PolicyVersion


class Role(Base, TimestampMixin):
    """Named grouping used to assign policies to employees."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    company: Mapped[Company] = relationship(back_populates="roles")
    employee_links: Mapped[list[EmployeeRole]] = relationship(back_populates="role")
    policy_assignments: Mapped[list[RolePolicyAssignment]] = relationship(
        back_populates="role"
    )


class Employee(Base, TimestampMixin):
    """A person who acknowledges policies."""

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    # Relationships
    company: Mapped[Company] = relationship(back_populates="employees")
    roles: Mapped[list[EmployeeRole]] = relationship(
        back_populates="employee",
        lazy="selectin",
        order_by="EmployeeRole.id",
    )
    acknowledgement_requests: Mapped[list[AcknowledgementRequest]] = relationship(
        back_populates="employee"
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"


class EmployeeRole(Base):
    """Employee to role link."""

    __tablename__ = "employee_roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "role_id", name="employee_role_unique"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="roles")
    role: Mapped[Role] = relationship(back_populates="employee_links", lazy="selectin")


class RolePolicyAssignment(Base):
    """Role to policy version link."""

    __tablename__ = "role_policy_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    policy_version_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("policy_versions.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("role_id", "policy_version_id", name="role_policy_assignment_unique"),
    )

    # Relationships
    role: Mapped[Role] = relationship(back_populates="policy_assignments")
    policy_version: Mapped[PolicyVersion] = relationship(back_populates="role_assignments")
