"""
Phone Number Repair Task

Migrates login.number to VARCHAR(20) with a UNIQUE constraint, repairing
empty and duplicate values on the way.

Pipeline (order matters):
1. Check the connection
2. Inspect the column and plan the repair (early exit when already
   VARCHAR + UNIQUE and no value needs rewriting)
3. Drop existing UNIQUE indexes/constraints
4. Widen the column to VARCHAR(20)
5. Repair values (read all, plan, write rewrites one by one)
6. Re-apply NOT NULL + UNIQUE

Applying the constraint before step 5 makes repair writes fail, so the
steps never run out of order. No step is retried; a failed run can simply
be started again.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging

from shared.config import get_settings
from ..core.deduplicator import DuplicateValueRepair, RepairPlan
from ..core.errors import ConnectivityError, MaintenanceError, RepairConflictError
from ..db.migrations import (
    MYSQL_DIALECTS,
    ColumnState,
    apply_unique_constraint,
    drop_unique_constraints,
    inspect_column,
    widen_column,
)
from ..db.value_store import SqlValueStore

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    """Outcome of one repair run"""
    table: str
    column: str
    dry_run: bool = False
    no_action_needed: bool = False
    steps: List[str] = field(default_factory=list)
    state_before: Optional[ColumnState] = None
    state_after: Optional[ColumnState] = None
    plan: Optional[RepairPlan] = None
    applied: int = 0

    def summary(self) -> str:
        """Human-readable summary for operators"""
        if self.no_action_needed:
            return (
                f"Column {self.table}.{self.column} already uses VARCHAR with a "
                f"UNIQUE constraint and all values are unique. No action needed."
            )

        rewrites = len(self.plan.rewrites) if self.plan else 0
        if self.dry_run:
            return (
                f"DRY RUN - {rewrites} record(s) would be updated in {self.table}.{self.column} "
                f"({self.plan.placeholder_count if self.plan else 0} empty, "
                f"{self.plan.duplicate_count if self.plan else 0} duplicate). No changes written."
            )

        if self.applied == 0:
            return f"No duplicates detected in {self.table}.{self.column}. Steps run: {', '.join(self.steps)}."
        return (
            f"Updated {self.applied} record(s) in {self.table}.{self.column} to unique placeholder values. "
            f"You can edit these numbers later via the dashboard."
        )

    def to_dict(self, sample_size: Optional[int] = 20) -> dict:
        return {
            "table": self.table,
            "column": self.column,
            "dry_run": self.dry_run,
            "no_action_needed": self.no_action_needed,
            "steps": self.steps,
            "state_before": self.state_before.to_dict() if self.state_before else None,
            "state_after": self.state_after.to_dict() if self.state_after else None,
            "plan": self.plan.to_dict(sample_size=sample_size) if self.plan else None,
            "applied": self.applied,
            "summary": self.summary()
        }


class PhoneNumberRepairTask:
    """
    Runs the phone number migration against one database

    The task owns a single connection for the whole run and releases it on
    every exit path.
    """

    def __init__(
        self,
        engine: Engine,
        table_name: Optional[str] = None,
        id_column: Optional[str] = None,
        value_column: Optional[str] = None,
        column_length: Optional[int] = None,
        unique_index: Optional[str] = None,
        placeholder_prefix: Optional[str] = None
    ):
        """
        Initialize repair task

        Unset arguments fall back to the application settings.

        Args:
            engine: Database engine
            table_name: Table holding the phone numbers
            id_column: Primary key column
            value_column: Phone number column
            column_length: Target VARCHAR length
            unique_index: Name of the unique index to (re)create
            placeholder_prefix: Prefix for values given to empty records
        """
        settings = get_settings()
        self.engine = engine
        self.table_name = table_name or settings.phone_table
        self.id_column = id_column or settings.phone_id_column
        self.value_column = value_column or settings.phone_value_column
        self.column_length = column_length or settings.phone_column_length
        self.unique_index = unique_index or settings.phone_unique_index
        self.repairer = DuplicateValueRepair(
            placeholder_prefix=placeholder_prefix or settings.placeholder_prefix,
            max_length=self.column_length,
            case_insensitive=engine.dialect.name in MYSQL_DIALECTS
        )

    def run(self, dry_run: bool = False, progress_callback: Optional[Callable] = None) -> RepairReport:
        """
        Execute the pipeline

        Args:
            dry_run: Only inspect and plan; alter and write nothing
            progress_callback: Optional callback function(processed, total, message)

        Returns:
            RepairReport

        Raises:
            MaintenanceError: any failure, with record/progress context
        """
        report = RepairReport(table=self.table_name, column=self.value_column, dry_run=dry_run)

        logger.info("🔌 Connecting to database...")
        try:
            connection = self.engine.connect()
        except SQLAlchemyError as e:
            raise ConnectivityError(f"Cannot connect to database: {e}") from e

        with connection as conn:
            self._check_connection(conn)
            logger.info("✅ Connected.")

            state = inspect_column(conn, self.table_name, self.value_column)
            report.state_before = state
            report.steps.append("inspect")

            store = SqlValueStore(conn, self.table_name, self.id_column, self.value_column)

            if dry_run:
                report.plan = self.repairer.plan(store.read_all(), progress_callback)
                report.steps.append("plan")
                logger.info(f"⚠️  {report.summary()}")
                return report

            # Unique indexes still admit NULLs and whitespace variants, so look at the data first
            plan = self.repairer.plan(store.read_all(), progress_callback)
            if state.is_varchar and state.is_unique and not plan.rewrites:
                report.plan = plan
                report.no_action_needed = True
                report.state_after = state
                logger.info(f"✅ {report.summary()}")
                return report
            self._ensure_applicable(plan)

            if drop_unique_constraints(conn, state):
                report.steps.append("drop_unique")
            if widen_column(conn, state, self.column_length):
                report.steps.append("widen_column")

            report.plan = self._repair_values(store, report, progress_callback)
            report.steps.append("repair_values")

            current = inspect_column(conn, self.table_name, self.value_column)
            if apply_unique_constraint(conn, current, self.unique_index, self.column_length):
                report.steps.append("apply_unique")

            report.state_after = inspect_column(conn, self.table_name, self.value_column)

        logger.info(f"🎉 {report.summary()}")
        return report

    def _check_connection(self, conn):
        try:
            conn.execute(text("SELECT 1"))
            conn.commit()
        except SQLAlchemyError as e:
            raise ConnectivityError(f"Database is not reachable: {e}") from e

    def _ensure_applicable(self, plan: RepairPlan):
        if plan.is_applicable:
            return
        first = plan.conflicts[0]
        raise RepairConflictError(
            f"{len(plan.conflicts)} value(s) would not be unique or exceed "
            f"VARCHAR({self.column_length}); no records were changed",
            conflicts=plan.conflicts,
            record_id=first.record_id,
            attempted_value=first.value,
            applied=0,
            pending=len(plan.rewrites)
        )

    def _repair_values(
        self,
        store: SqlValueStore,
        report: RepairReport,
        progress_callback: Optional[Callable] = None
    ) -> RepairPlan:
        logger.info("🔎 Checking for duplicate phone numbers...")
        plan = self.repairer.plan(store.read_all(), progress_callback)

        self._ensure_applicable(plan)

        total = len(plan.rewrites)
        for rewrite in plan.rewrites:
            try:
                store.write_one(rewrite.record_id, rewrite.new_value)
            except MaintenanceError as e:
                e.applied = report.applied
                e.pending = total - report.applied
                logger.error(
                    f"❌ Repair aborted at record {rewrite.record_id}: "
                    f"{report.applied} applied, {e.pending} pending"
                )
                raise
            report.applied += 1

        if report.applied:
            logger.info(f"♻️  Updated {report.applied} duplicate record(s) to unique placeholder values.")
        else:
            logger.info("✅ No duplicates detected.")
        return plan
