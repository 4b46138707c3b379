"""
Schema Migration Steps for the phone number column

Each step is idempotent and safe to rerun on its own:
- inspect_column: read type, nullability and unique indexes/constraints
- drop_unique_constraints: remove uniqueness so repair writes cannot be rejected
- widen_column: convert the column to VARCHAR(n)
- apply_unique_constraint: NOT NULL + unique index, only after repair

DDL differs per dialect (MySQL, PostgreSQL). SQLite does not enforce
VARCHAR lengths and cannot alter column types, so type steps are skipped
there.
"""

from sqlalchemy import Column, Index, MetaData, String, Table, UniqueConstraint, inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import DropConstraint
from sqlalchemy.sql import sqltypes
from dataclasses import dataclass, field
import logging
from typing import List, Optional

from ..core.errors import SchemaError
from .value_store import map_db_error

logger = logging.getLogger(__name__)

MYSQL_DIALECTS = ('mysql', 'mariadb')


@dataclass
class ColumnState:
    """Snapshot of the value column's definition"""
    table: str
    column: str
    type_name: str
    length: Optional[int] = None
    is_varchar: bool = False
    nullable: bool = True
    unique_indexes: List[str] = field(default_factory=list)
    unique_constraints: List[Optional[str]] = field(default_factory=list)

    @property
    def is_unique(self) -> bool:
        return bool(self.unique_indexes or self.unique_constraints)

    def has_length(self, length: int) -> bool:
        return self.is_varchar and self.length == length

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "column": self.column,
            "type": self.type_name,
            "length": self.length,
            "is_varchar": self.is_varchar,
            "nullable": self.nullable,
            "is_unique": self.is_unique,
            "unique_indexes": self.unique_indexes,
            "unique_constraints": self.unique_constraints
        }


def _column_table(table_name: str, column_name: str, length: Optional[int] = None) -> Table:
    """Minimal Table object for DDL constructs (no reflection)"""
    return Table(table_name, MetaData(), Column(column_name, String(length)))


def _quote(conn: Connection, name: str) -> str:
    return conn.dialect.identifier_preparer.quote(name)


def _execute_ddl(conn: Connection, statement, action: str):
    try:
        conn.execute(statement)
        conn.commit()
    except SQLAlchemyError as e:
        conn.rollback()
        raise map_db_error(e, action) from e


def inspect_column(conn: Connection, table_name: str, column_name: str) -> ColumnState:
    """
    Describe the value column

    Args:
        conn: Open connection
        table_name: Table holding the column
        column_name: Column to describe

    Returns:
        ColumnState

    Raises:
        SchemaError: table or column does not exist
    """
    inspector = inspect(conn)
    try:
        columns = inspector.get_columns(table_name)
        unique_constraints = inspector.get_unique_constraints(table_name)
        indexes = inspector.get_indexes(table_name)
    except SQLAlchemyError as e:
        raise map_db_error(e, f"Inspecting table '{table_name}'") from e
    finally:
        # Inspection autobegins a transaction; DDL steps need a clean slate
        conn.rollback()

    col = next((c for c in columns if c['name'] == column_name), None)
    if col is None:
        raise SchemaError(
            f"Column '{column_name}' not found in table '{table_name}'. "
            f"Recreate the table using database-setup.sql."
        )

    col_type = col['type']
    is_varchar = isinstance(col_type, sqltypes.VARCHAR)

    constraint_names = [
        uc['name'] for uc in unique_constraints
        if list(uc['column_names']) == [column_name]
    ]
    index_names = [
        ix['name'] for ix in indexes
        if ix.get('unique')
        and list(ix['column_names']) == [column_name]
        and 'duplicates_constraint' not in ix
        and ix['name'] not in constraint_names
    ]

    state = ColumnState(
        table=table_name,
        column=column_name,
        type_name=str(col_type).lower(),
        length=getattr(col_type, 'length', None) if is_varchar else None,
        is_varchar=is_varchar,
        nullable=bool(col.get('nullable', True)),
        unique_indexes=index_names,
        unique_constraints=constraint_names
    )
    logger.info(f"ℹ️  Current column type: {state.type_name}, unique: {state.is_unique}")
    return state


def drop_unique_constraints(conn: Connection, state: ColumnState) -> bool:
    """
    Drop every unique index/constraint on the column

    Returns:
        True if anything was dropped
    """
    if not state.is_unique:
        logger.info(f"ℹ️  No UNIQUE index on `{state.column}` found (nothing to drop).")
        return False

    dialect = conn.dialect.name
    tbl = _column_table(state.table, state.column)

    for name in state.unique_indexes:
        logger.info(f"🧹 Dropping UNIQUE index `{name}` on `{state.column}`...")
        index = Index(name, tbl.c[state.column], unique=True)
        try:
            index.drop(conn)
            conn.commit()
        except SQLAlchemyError as e:
            conn.rollback()
            raise map_db_error(e, f"Dropping index '{name}'") from e

    for name in state.unique_constraints:
        if dialect == 'sqlite' or name is None:
            raise SchemaError(
                f"Cannot drop table-level UNIQUE constraint on "
                f"'{state.table}.{state.column}' in {dialect}; recreate the table without it"
            )
        logger.info(f"🧹 Dropping UNIQUE constraint `{name}` on `{state.column}`...")
        constraint = UniqueConstraint(tbl.c[state.column], name=name)
        _execute_ddl(conn, DropConstraint(constraint), f"Dropping constraint '{name}'")

    return True


def widen_column(conn: Connection, state: ColumnState, length: int) -> bool:
    """
    Convert the column to VARCHAR(length), keeping its nullability

    Returns:
        True if the column definition was changed
    """
    if state.has_length(length):
        logger.info(f"✅ `{state.column}` already VARCHAR({length}).")
        return False

    dialect = conn.dialect.name
    table_sql = _quote(conn, state.table)
    column_sql = _quote(conn, state.column)

    if dialect in MYSQL_DIALECTS:
        null_sql = "NULL" if state.nullable else "NOT NULL"
        statement = text(f"ALTER TABLE {table_sql} MODIFY COLUMN {column_sql} VARCHAR({length}) {null_sql}")
    elif dialect == 'postgresql':
        statement = text(
            f"ALTER TABLE {table_sql} ALTER COLUMN {column_sql} TYPE VARCHAR({length}) "
            f"USING {column_sql}::varchar({length})"
        )
    elif dialect == 'sqlite':
        logger.info(f"ℹ️  SQLite does not enforce VARCHAR lengths; leaving `{state.column}` as {state.type_name}.")
        return False
    else:
        raise SchemaError(f"Altering column types is not supported for dialect '{dialect}'")

    logger.info(f"🛠️  Converting `{state.column}` column to VARCHAR({length})...")
    _execute_ddl(conn, statement, f"Converting '{state.table}.{state.column}' to VARCHAR({length})")
    return True


def apply_unique_constraint(conn: Connection, state: ColumnState, index_name: str, length: int) -> bool:
    """
    Make the column NOT NULL and (re)create the unique index

    Must only run after the values have been repaired.

    Returns:
        True if the unique index was created
    """
    dialect = conn.dialect.name
    table_sql = _quote(conn, state.table)
    column_sql = _quote(conn, state.column)

    if state.nullable:
        statement = None
        if dialect in MYSQL_DIALECTS:
            statement = text(f"ALTER TABLE {table_sql} MODIFY COLUMN {column_sql} VARCHAR({length}) NOT NULL")
        elif dialect == 'postgresql':
            statement = text(f"ALTER TABLE {table_sql} ALTER COLUMN {column_sql} SET NOT NULL")
        if statement is not None:
            logger.info(f"🛠️  Marking `{state.column}` NOT NULL...")
            _execute_ddl(conn, statement, f"Marking '{state.table}.{state.column}' NOT NULL")

    if state.is_unique:
        logger.info(f"✅ `{state.column}` already has a UNIQUE constraint.")
        return False

    logger.info(f"🔐 Re-adding UNIQUE constraint on `{state.column}` column...")
    tbl = _column_table(state.table, state.column, length)
    index = Index(index_name, tbl.c[state.column], unique=True)
    try:
        index.create(conn)
        conn.commit()
    except SQLAlchemyError as e:
        conn.rollback()
        raise map_db_error(e, f"Creating UNIQUE index '{index_name}'") from e
    return True
