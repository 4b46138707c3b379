"""
Database package initialization

Exports engine setup, schema migration steps and the value store
"""

from .config import (
    create_db_engine,
    get_engine,
    init_db,
    check_db_health,
    get_db_info
)

from .migrations import (
    ColumnState,
    inspect_column,
    drop_unique_constraints,
    widen_column,
    apply_unique_constraint
)

from .value_store import SqlValueStore, map_db_error

from backend.models.database import Base, Login

__all__ = [
    # Engine
    'create_db_engine',
    'get_engine',

    # Database operations
    'init_db',
    'check_db_health',
    'get_db_info',

    # Migration steps
    'ColumnState',
    'inspect_column',
    'drop_unique_constraints',
    'widen_column',
    'apply_unique_constraint',

    # Value access
    'SqlValueStore',
    'map_db_error',

    # Models
    'Base',
    'Login'
]
