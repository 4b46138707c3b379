"""
Maintenance Errors

Error taxonomy shared by the storage collaborator, the schema migration
steps and the repair pipeline. Every error carries enough context for an
operator to diagnose the failure and rerun.
"""

from typing import Any, Optional


class MaintenanceError(Exception):
    """Base class for all repair/migration failures"""

    code = "MAINTENANCE_ERROR"

    def __init__(
        self,
        message: str,
        record_id: Any = None,
        attempted_value: Optional[str] = None,
        applied: Optional[int] = None,
        pending: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.record_id = record_id
        self.attempted_value = attempted_value
        self.applied = applied
        self.pending = pending

    def to_dict(self) -> dict:
        """Serialize error context (used by the CLI and admin API)"""
        data = {"code": self.code, "message": self.message}
        if self.record_id is not None:
            data["record_id"] = self.record_id
        if self.attempted_value is not None:
            data["attempted_value"] = self.attempted_value
        if self.applied is not None:
            data["applied"] = self.applied
        if self.pending is not None:
            data["pending"] = self.pending
        return data

    def __str__(self) -> str:
        parts = [self.message]
        if self.record_id is not None:
            parts.append(f"record_id={self.record_id}")
        if self.attempted_value is not None:
            parts.append(f"value={self.attempted_value!r}")
        if self.applied is not None:
            parts.append(f"applied={self.applied}")
        if self.pending is not None:
            parts.append(f"pending={self.pending}")
        return " | ".join(parts)


class ConnectivityError(MaintenanceError):
    """The store is unreachable (at start or during a write)"""
    code = "CONNECTIVITY"


class SchemaError(MaintenanceError):
    """The expected table or value column does not exist"""
    code = "SCHEMA"


class ConstraintViolationError(MaintenanceError):
    """A write was rejected by an active constraint"""
    code = "CONSTRAINT_VIOLATION"


class RepairConflictError(MaintenanceError):
    """The computed plan would not leave the column unique; nothing was written"""
    code = "REPAIR_CONFLICT"

    def __init__(self, message: str, conflicts: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.conflicts = conflicts or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflicts"] = [conflict.to_dict() for conflict in self.conflicts]
        return data
