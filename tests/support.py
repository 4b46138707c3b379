"""Shared SQLite fixtures for the database-backed tests"""

from sqlalchemy import text

from backend.db.config import create_db_engine

LOGIN_DDL = (
    "CREATE TABLE login ("
    "id INTEGER PRIMARY KEY, "
    "name VARCHAR(255), "
    "email VARCHAR(255), "
    "number VARCHAR(20), "
    "password VARCHAR(255), "
    "created_at DATETIME)"
)


def make_engine(url: str = "sqlite://"):
    return create_db_engine(url)


def seed_login(engine, rows, unique_index: bool = False):
    """Create the login table and insert (id, number) rows"""
    with engine.begin() as conn:
        conn.execute(text(LOGIN_DDL))
        if unique_index:
            conn.execute(text("CREATE UNIQUE INDEX number ON login (number)"))
        for record_id, number in rows:
            conn.execute(
                text(
                    "INSERT INTO login (id, name, email, number, password) "
                    "VALUES (:id, :name, :email, :number, 'x')"
                ),
                {"id": record_id, "name": f"user{record_id}", "email": f"u{record_id}@medhome.test", "number": number}
            )


def numbers_by_id(engine):
    with engine.connect() as conn:
        rows = conn.execute(text("SELECT id, number FROM login ORDER BY id")).all()
    return {row[0]: row[1] for row in rows}
