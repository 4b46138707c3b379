"""
Maintenance API Endpoints

Administrative access to the phone number migration:
- Inspect the column and preview the repair plan
- Run the repair pipeline
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.engine import Engine
from typing import Optional
import logging

from ..core.errors import (
    ConnectivityError,
    ConstraintViolationError,
    MaintenanceError,
    RepairConflictError,
    SchemaError,
)
from ..db.config import get_engine
from ..tasks.repair_task import PhoneNumberRepairTask

logger = logging.getLogger(__name__)

router = APIRouter()

# Error class -> HTTP status
ERROR_STATUS = [
    (ConnectivityError, 503),
    (SchemaError, 422),
    (ConstraintViolationError, 409),
    (RepairConflictError, 409),
]


def get_maintenance_engine() -> Engine:
    """Engine dependency (overridden in tests)"""
    return get_engine()


def _to_http(error: MaintenanceError) -> HTTPException:
    status = next((code for cls, code in ERROR_STATUS if isinstance(error, cls)), 500)
    return HTTPException(status_code=status, detail=error.to_dict())


# ===== API Endpoints =====

@router.get("/phone-numbers")
def get_phone_number_status(
    sample_size: Optional[int] = 20,
    engine: Engine = Depends(get_maintenance_engine)
):
    """
    Column definition plus a dry-run repair plan

    Nothing is altered or written.
    """
    logger.info("🔎 Inspecting phone number column")
    try:
        report = PhoneNumberRepairTask(engine).run(dry_run=True)
    except MaintenanceError as e:
        logger.error(f"❌ Inspection failed: {e}")
        raise _to_http(e) from e
    return report.to_dict(sample_size=sample_size)


@router.post("/phone-numbers/repair")
def repair_phone_numbers(
    dry_run: bool = False,
    sample_size: Optional[int] = 20,
    engine: Engine = Depends(get_maintenance_engine)
):
    """
    Run the phone number migration

    drop UNIQUE -> VARCHAR(20) -> repair values -> NOT NULL + UNIQUE
    """
    logger.info(f"🛠️  Phone number repair requested (dry_run={dry_run})")
    try:
        report = PhoneNumberRepairTask(engine).run(dry_run=dry_run)
    except MaintenanceError as e:
        logger.error(f"❌ Migration failed: {e}")
        raise _to_http(e) from e
    return report.to_dict(sample_size=sample_size)
