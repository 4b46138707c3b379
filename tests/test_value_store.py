import unittest

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from backend.core.errors import (
    ConnectivityError,
    ConstraintViolationError,
    MaintenanceError,
    SchemaError,
)
from backend.db.value_store import SqlValueStore, map_db_error
from tests.support import make_engine, numbers_by_id, seed_login


class SqlValueStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_read_all_sorted_by_value_then_id(self) -> None:
        seed_login(self.engine, [(3, "555-0101"), (2, "555-0100"), (1, "555-0100"), (4, "")])
        with self.engine.connect() as conn:
            records = SqlValueStore(conn, "login").read_all()
        self.assertEqual(
            [(r.id, r.value) for r in records],
            [(4, ""), (1, "555-0100"), (2, "555-0100"), (3, "555-0101")]
        )

    def test_read_all_empty_table(self) -> None:
        seed_login(self.engine, [])
        with self.engine.connect() as conn:
            self.assertEqual(SqlValueStore(conn, "login").read_all(), [])

    def test_write_one_commits(self) -> None:
        seed_login(self.engine, [(1, "555-0100"), (2, "555-0100")])
        with self.engine.connect() as conn:
            SqlValueStore(conn, "login").write_one(2, "555-0100-2")
        self.assertEqual(numbers_by_id(self.engine), {1: "555-0100", 2: "555-0100-2"})

    def test_write_one_missing_record_is_noop(self) -> None:
        seed_login(self.engine, [(1, "555-0100")])
        with self.engine.connect() as conn:
            SqlValueStore(conn, "login").write_one(99, "pending-99")
        self.assertEqual(numbers_by_id(self.engine), {1: "555-0100"})

    def test_missing_value_column(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text("CREATE TABLE login (id INTEGER PRIMARY KEY, email VARCHAR(255))"))
        with self.engine.connect() as conn:
            with self.assertRaises(SchemaError) as ctx:
                SqlValueStore(conn, "login").read_all()
        self.assertIn("number", str(ctx.exception))

    def test_missing_table(self) -> None:
        with self.engine.connect() as conn:
            with self.assertRaises(SchemaError):
                SqlValueStore(conn, "login").read_all()

    def test_unique_index_rejects_duplicate_write(self) -> None:
        seed_login(self.engine, [(1, "555-0100"), (2, "555-0200")], unique_index=True)
        with self.engine.connect() as conn:
            with self.assertRaises(ConstraintViolationError) as ctx:
                SqlValueStore(conn, "login").write_one(2, "555-0100")
        self.assertEqual(ctx.exception.record_id, 2)
        self.assertEqual(ctx.exception.attempted_value, "555-0100")
        self.assertEqual(numbers_by_id(self.engine), {1: "555-0100", 2: "555-0200"})


class MapDbErrorTests(unittest.TestCase):
    def test_operational_error_is_connectivity(self) -> None:
        error = map_db_error(OperationalError("UPDATE login", {}, Exception("gone away")), "Updating")
        self.assertIsInstance(error, ConnectivityError)
        self.assertIn("gone away", error.message)

    def test_integrity_error_is_constraint_violation(self) -> None:
        error = map_db_error(
            IntegrityError("UPDATE login", {}, Exception("Duplicate entry")),
            "Updating",
            record_id=5,
            attempted_value="555-0100-5"
        )
        self.assertIsInstance(error, ConstraintViolationError)
        self.assertEqual(error.to_dict()["record_id"], 5)
        self.assertEqual(error.to_dict()["code"], "CONSTRAINT_VIOLATION")

    def test_error_string_carries_context(self) -> None:
        error = MaintenanceError("failed", record_id=3, attempted_value="x", applied=1, pending=2)
        self.assertEqual(str(error), "failed | record_id=3 | value='x' | applied=1 | pending=2")


if __name__ == "__main__":
    unittest.main()
