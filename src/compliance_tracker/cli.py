"""Compliance tracker command line interface.

Provides operational tools for:
- Schema creation
- Company bootstrap
- Overdue acknowledgement reports
- Dashboard metrics

Usage:
    python -m compliance_tracker.cli init-db
    python -m compliance_tracker.cli create-company --name "Acme Dental"
    python -m compliance_tracker.cli overdue --company-id 1
    python -m compliance_tracker.cli metrics --company-id 1 --format text
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Callable

from compliance_tracker.config import get_settings
from compliance_tracker.database import (
    create_schema,
    dispose_db,
    get_engine,
    get_session,
    init_db,
)
from compliance_tracker.models import utc_now
from compliance_tracker.services.acknowledgement_service import AcknowledgementService
from compliance_tracker.services.company_service import CompanyService
from compliance_tracker.services.errors import ComplianceError
from compliance_tracker.services.metrics_service import MetricsService
from compliance_tracker.services.triage import classify_severity, days_overdue


def positive_int(s: str) -> int:
    """Parse a strictly positive integer."""
    value = int(s)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {s}")
    return value


class ComplianceCli:
    """Compliance tracker command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m compliance_tracker.cli",
            description="Compliance tracker operational tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # init-db command
        subparsers.add_parser(
            "init-db",
            help="Create all tables that do not exist yet",
        )

        # create-company command
        company = subparsers.add_parser(
            "create-company",
            help="Create a company (tenant)",
        )
        company.add_argument(
            "--name",
            type=str,
            required=True,
            help="Company name",
        )

        # overdue command
        overdue = subparsers.add_parser(
            "overdue",
            help="List overdue acknowledgement requests",
        )
        overdue.add_argument(
            "--company-id",
            type=positive_int,
            required=True,
            help="Company to report on",
        )

        # metrics command
        metrics = subparsers.add_parser(
            "metrics",
            help="Show dashboard metrics",
        )
        metrics.add_argument(
            "--company-id",
            type=positive_int,
            required=True,
            help="Company to report on",
        )
        metrics.add_argument(
            "--format",
            type=str,
            choices=["json", "text"],
            default="json",
            help="Output format",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        logging.basicConfig(level=getattr(logging, get_settings().log_level, logging.INFO))

        handlers: dict[str, Callable[..., Any]] = {
            "init-db": self._cmd_init_db,
            "create-company": self._cmd_create_company,
            "overdue": self._cmd_overdue,
            "metrics": self._cmd_metrics,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        return asyncio.run(self._dispatch(handler, parsed))

    async def _dispatch(self, handler: Callable[..., Any], args: argparse.Namespace) -> int:
        """Bind the database, run one command and release the engine."""
        if args.database_url:
            init_db(get_engine(args.database_url))
        else:
            init_db()
        try:
            return await handler(args)
        except ComplianceError as e:
            print(f"ERROR: {e.message}", file=sys.stderr)
            return 1
        finally:
            await dispose_db()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create the schema."""
        await create_schema()
        print("Schema created.")
        return 0

    async def _cmd_create_company(self, args: argparse.Namespace) -> int:
        """Create a company and print it."""
        async with get_session() as session:
            company = await CompanyService(session).create_company(args.name)
            print(json.dumps({"id": company.id, "name": company.name}, indent=2))
        return 0

    async def _cmd_overdue(self, args: argparse.Namespace) -> int:
        """Print overdue requests, longest overdue first."""
        now = utc_now()
        async with get_session() as session:
            requests = await AcknowledgementService(session).list_overdue(
                args.company_id, now=now
            )
            rows = [
                {
                    "requestId": r.id,
                    "employee": r.employee.email,
                    "policy": r.policy_version.policy.title,
                    "version": r.policy_version.version,
                    "dueDate": r.due_date.isoformat(),
                    "daysOverdue": days_overdue(r.due_date, now),
                    "severity": classify_severity(r.due_date, now).value,
                    "escalated": r.escalated_at is not None,
                }
                for r in requests
            ]
        print(json.dumps(rows, indent=2))
        return 0

    async def _cmd_metrics(self, args: argparse.Namespace) -> int:
        """Print dashboard metrics."""
        async with get_session() as session:
            metrics = await MetricsService(session).get_dashboard_metrics(args.company_id)

        if args.format == "json":
            print(json.dumps(asdict(metrics), indent=2))
        else:
            for name, value in asdict(metrics).items():
                print(f"{name:<30} {value}")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = ComplianceCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
