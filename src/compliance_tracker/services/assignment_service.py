"""Roles, employees and their assignments."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_tracker.models import (
    Company,
    Employee,
    EmployeeRole,
    PolicyVersion,
    Role,
    RolePolicyAssignment,
    utc_now,
)
from compliance_tracker.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class AssignmentService:
    """Service for roles, employees and the links between them.

    Key invariants:
    1. One EmployeeRole per (employee, role) and one RolePolicyAssignment per
       (role, policy version), enforced by unique constraints
    2. Re-assigning an existing pair returns the existing row; a concurrent
       duplicate insert fails on the constraint and rolls back
    3. Employees are never deleted, only deactivated
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_company(self, company_id: int) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def get_role(self, company_id: int, role_id: int) -> Role:
        """Load a role owned by the company."""
        role = await self.session.get(Role, role_id)
        if role is None or role.company_id != company_id:
            raise NotFoundError("Role", role_id)
        return role

    async def get_employee(self, company_id: int, employee_id: int) -> Employee:
        """Load an employee owned by the company, with roles."""
        result = await self.session.execute(
            select(Employee)
            .where(Employee.id == employee_id)
            .execution_options(populate_existing=True)
        )
        employee = result.scalar_one_or_none()
        if employee is None or employee.company_id != company_id:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def _get_version(self, company_id: int, version_id: int) -> PolicyVersion:
        version = await self.session.get(PolicyVersion, version_id)
        if version is None or version.policy.company_id != company_id:
            raise NotFoundError("PolicyVersion", version_id)
        return version

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def create_role(
        self, company_id: int, name: str | None, description: str | None = None
    ) -> Role:
        """Create a role."""
        if name is None or not name.strip():
            raise ValidationError("name is required", field="name")
        await self._get_company(company_id)

        role = Role(company_id=company_id, name=name.strip(), description=description)
        self.session.add(role)
        await self.session.flush()
        return role

    async def list_roles(self, company_id: int) -> list[Role]:
        """List roles, newest first."""
        result = await self.session.execute(
            select(Role)
            .where(Role.company_id == company_id)
            .order_by(Role.created_at.desc(), Role.id.desc())
        )
        return list(result.scalars().all())

    async def assign_policy_to_role(
        self, company_id: int, role_id: int, policy_version_id: int
    ) -> RolePolicyAssignment:
        """Assign a policy version to a role. Idempotent per pair."""
        await self.get_role(company_id, role_id)
        await self._get_version(company_id, policy_version_id)

        existing = await self.session.scalar(
            select(RolePolicyAssignment).where(
                RolePolicyAssignment.role_id == role_id,
                RolePolicyAssignment.policy_version_id == policy_version_id,
            )
        )
        if existing is not None:
            return existing

        assignment = RolePolicyAssignment(role_id=role_id, policy_version_id=policy_version_id)
        self.session.add(assignment)
        await self.session.flush()
        logger.info("Assigned policy version %s to role %s", policy_version_id, role_id)
        return assignment

    async def list_role_assignments(
        self, company_id: int, role_id: int
    ) -> list[RolePolicyAssignment]:
        """List policy versions assigned to a role."""
        await self.get_role(company_id, role_id)
        result = await self.session.execute(
            select(RolePolicyAssignment)
            .where(RolePolicyAssignment.role_id == role_id)
            .order_by(RolePolicyAssignment.id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    async def create_employee(
        self,
        company_id: int,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
        start_date: datetime | None,
        is_active: bool = True,
    ) -> Employee:
        """Create an employee. Email addresses are unique across companies."""
        for field, value in (
            ("firstName", first_name),
            ("lastName", last_name),
            ("email", email),
        ):
            if value is None or not value.strip():
                raise ValidationError(f"{field} is required", field=field)
        if start_date is None:
            raise ValidationError("startDate is required", field="startDate")
        await self._get_company(company_id)

        email = email.strip().lower()
        taken = await self.session.scalar(select(Employee.id).where(Employee.email == email))
        if taken is not None:
            raise ValidationError(f"email {email} is already registered", field="email")

        employee = Employee(
            company_id=company_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            start_date=start_date,
            is_active=is_active,
            roles=[],
        )
        self.session.add(employee)
        await self.session.flush()
        await self.session.refresh(employee)
        logger.info("Created employee %s for company %s", employee.id, company_id)
        return employee

    async def list_employees(self, company_id: int) -> list[Employee]:
        """List employees with their roles, newest first."""
        result = await self.session.execute(
            select(Employee)
            .where(Employee.company_id == company_id)
            .order_by(Employee.created_at.desc(), Employee.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def set_employee_active(
        self, company_id: int, employee_id: int, is_active: bool
    ) -> Employee:
        """Activate or deactivate an employee."""
        employee = await self.get_employee(company_id, employee_id)
        employee.is_active = is_active
        employee.updated_at = utc_now()
        await self.session.flush()
        logger.info("Employee %s is_active=%s", employee_id, is_active)
        return employee

    async def assign_role_to_employee(
        self, company_id: int, employee_id: int, role_id: int
    ) -> EmployeeRole:
        """Give an employee a role. Idempotent per pair."""
        await self.get_employee(company_id, employee_id)
        await self.get_role(company_id, role_id)

        existing = await self.session.scalar(
            select(EmployeeRole).where(
                EmployeeRole.employee_id == employee_id,
                EmployeeRole.role_id == role_id,
            )
        )
        if existing is not None:
            return existing

        link = EmployeeRole(employee_id=employee_id, role_id=role_id)
        self.session.add(link)
        await self.session.flush()
        logger.info("Assigned role %s to employee %s", role_id, employee_id)
        return link
