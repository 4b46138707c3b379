"""
Value Store - read-all / write-one access to a single text column

Thin collaborator between the repair task and the database. It works on one
open connection owned by the caller and commits every write on its own, so
an interrupted run leaves the writes made so far in place.
"""

from sqlalchemy import column, inspect, select, table, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    NoSuchTableError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)
import logging
from typing import Any, List, Optional

from ..core.deduplicator import Record
from ..core.errors import (
    ConnectivityError,
    ConstraintViolationError,
    MaintenanceError,
    SchemaError,
)

logger = logging.getLogger(__name__)


def map_db_error(
    error: SQLAlchemyError,
    action: str,
    record_id: Any = None,
    attempted_value: Optional[str] = None
) -> MaintenanceError:
    """
    Translate a SQLAlchemy exception into the maintenance error taxonomy

    Args:
        error: Exception raised by SQLAlchemy
        action: Short description of what was being done (for the message)
        record_id: Record being written, if any
        attempted_value: Value being written, if any

    Returns:
        MaintenanceError subclass instance (caller raises it)
    """
    context = {"record_id": record_id, "attempted_value": attempted_value}
    detail = getattr(error, "orig", None) or error

    if isinstance(error, (IntegrityError, DataError)):
        return ConstraintViolationError(f"{action} rejected by constraint: {detail}", **context)
    if isinstance(error, NoSuchTableError):
        return SchemaError(f"{action} failed: table {error} does not exist", **context)
    if isinstance(error, ProgrammingError):
        return SchemaError(f"{action} failed: {detail}", **context)
    if isinstance(error, (OperationalError, InterfaceError, DisconnectionError)):
        return ConnectivityError(f"{action} failed: cannot reach database: {detail}", **context)
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return ConnectivityError(f"{action} failed: connection lost: {detail}", **context)
    return MaintenanceError(f"{action} failed: {detail}", **context)


class SqlValueStore:
    """
    Storage collaborator over one table column

    Usage:
        with engine.connect() as conn:
            store = SqlValueStore(conn, "login", "id", "number")
            records = store.read_all()
            store.write_one(records[1].id, "555-0100-2")
    """

    def __init__(
        self,
        connection: Connection,
        table_name: str,
        id_column: str = "id",
        value_column: str = "number"
    ):
        self.connection = connection
        self.table_name = table_name
        self.id_column = id_column
        self.value_column = value_column
        self._table = table(table_name, column(id_column), column(value_column))

    def ensure_schema(self):
        """Raise SchemaError unless the table has both id and value columns"""
        try:
            names = {col['name'] for col in inspect(self.connection).get_columns(self.table_name)}
        except SQLAlchemyError as e:
            raise map_db_error(e, f"Inspecting table '{self.table_name}'") from e

        for name in (self.id_column, self.value_column):
            if name not in names:
                raise SchemaError(f"Column '{name}' not found in table '{self.table_name}'")

    def read_all(self) -> List[Record]:
        """
        Fetch every (id, value) pair sorted by (value, id)

        Returns:
            List of Record
        """
        self.ensure_schema()

        id_col = self._table.c[self.id_column]
        value_col = self._table.c[self.value_column]
        stmt = select(id_col, value_col).order_by(value_col, id_col)

        try:
            rows = self.connection.execute(stmt).all()
            # End the implicit read transaction so each write commits on its own
            self.connection.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise map_db_error(e, f"Reading '{self.table_name}.{self.value_column}'") from e

        logger.info(f"📥 Read {len(rows)} record(s) from {self.table_name}")
        return [Record(id=row[0], value=row[1]) for row in rows]

    def write_one(self, record_id: Any, new_value: str):
        """
        Persist a new value for one record and commit immediately

        Args:
            record_id: Identifier of the record to update
            new_value: Replacement value
        """
        stmt = (
            update(self._table)
            .where(self._table.c[self.id_column] == record_id)
            .values({self._table.c[self.value_column]: new_value})
        )

        try:
            result = self.connection.execute(stmt)
            self.connection.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise map_db_error(
                e,
                f"Updating {self.table_name}.{self.value_column}",
                record_id=record_id,
                attempted_value=new_value
            ) from e

        if result.rowcount == 0:
            logger.warning(f"⚠️  Record {record_id} no longer exists, nothing updated")

    def _rollback(self):
        try:
            self.connection.rollback()
        except SQLAlchemyError as e:
            # The original failure is what gets reported
            logger.warning(f"⚠️  Rollback failed: {e}")
