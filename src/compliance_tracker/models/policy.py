"""Policy and policy version models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance_tracker.models.base import Base, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from compliance_tracker.models.acknowledgement import AcknowledgementRequest
    from compliance_tracker.models.company import Company
    from compliance_tracker.models.employee import RolePolicyAssignment


class PolicyType(str, Enum):
    """Fixed set of policy document types."""

    INFORMATION_SECURITY = "INFORMATION_SECURITY"
    ACCEPTABLE_USE = "ACCEPTABLE_USE"
    CRYPTO = "CRYPTO"
    DATA_PROTECTION = "DATA_PROTECTION"
    INCIDENT_RESPONSE = "INCIDENT_RESPONSE"
    CUSTOM = "CUSTOM"


class VersionStatus(str, Enum):
    """Policy version status values."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DEPRECATED = "DEPRECATED"


def _in_clause(column: str, enum: type[Enum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum)
    return f"{column} IN ({values})"


class Policy(Base, TimestampMixin):
    """A named compliance document."""

    __tablename__ = "policies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    is_template: Mapped[bool] = mapped_column(default=False, nullable=False)
    template_source: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(_in_clause("type", PolicyType), name="policy_type_check"),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="policies")
    versions: Mapped[list[PolicyVersion]] = relationship(
        back_populates="policy",
        lazy="selectin",
        order_by="PolicyVersion.id",
    )

    @property
    def latest_version(self) -> PolicyVersion | None:
        """Most recently created version; highest id wins a timestamp tie."""
        if not self.versions:
            return None
        return max(self.versions, key=lambda v: (v.created_at, v.id))


class PolicyVersion(Base, TimestampMixin):
    """An approvable snapshot of a policy's content."""

    __tablename__ = "policy_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    policy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("policies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=VersionStatus.DRAFT.value)
    config_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    # Actor ids come from the identity provider, not the employees table
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(_in_clause("status", VersionStatus), name="policy_version_status_check"),
    )

    # Relationships
    policy: Mapped[Policy] = relationship(back_populates="versions", lazy="selectin")
    role_assignments: Mapped[list[RolePolicyAssignment]] = relationship(
        back_populates="policy_version"
    )
    acknowledgement_requests: Mapped[list[AcknowledgementRequest]] = relationship(
        back_populates="policy_version"
    )
