import unittest

from sqlalchemy import text

from backend.core.errors import SchemaError
from backend.db.migrations import (
    apply_unique_constraint,
    drop_unique_constraints,
    inspect_column,
    widen_column,
)
from tests.support import make_engine, seed_login


class InspectColumnTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_varchar_without_unique(self) -> None:
        seed_login(self.engine, [])
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
        self.assertTrue(state.is_varchar)
        self.assertEqual(state.length, 20)
        self.assertTrue(state.has_length(20))
        self.assertFalse(state.is_unique)
        self.assertTrue(state.nullable)

    def test_unique_index_detected(self) -> None:
        seed_login(self.engine, [], unique_index=True)
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
        self.assertTrue(state.is_unique)
        self.assertEqual(state.unique_indexes, ["number"])

    def test_integer_column_is_not_varchar(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text("CREATE TABLE login (id INTEGER PRIMARY KEY, number BIGINT)"))
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
        self.assertFalse(state.is_varchar)
        self.assertIsNone(state.length)

    def test_missing_column(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text("CREATE TABLE login (id INTEGER PRIMARY KEY)"))
        with self.engine.connect() as conn:
            with self.assertRaises(SchemaError):
                inspect_column(conn, "login", "number")


class MigrationStepTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_drop_unique_index(self) -> None:
        seed_login(self.engine, [], unique_index=True)
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
            self.assertTrue(drop_unique_constraints(conn, state))
            self.assertFalse(inspect_column(conn, "login", "number").is_unique)

    def test_drop_is_noop_without_index(self) -> None:
        seed_login(self.engine, [])
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
            self.assertFalse(drop_unique_constraints(conn, state))

    def test_inline_unique_constraint_cannot_be_dropped_on_sqlite(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text(
                "CREATE TABLE login (id INTEGER PRIMARY KEY, number VARCHAR(20), "
                "CONSTRAINT uq_number UNIQUE (number))"
            ))
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
            self.assertEqual(state.unique_constraints, ["uq_number"])
            with self.assertRaises(SchemaError):
                drop_unique_constraints(conn, state)

    def test_widen_skipped_on_sqlite(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text("CREATE TABLE login (id INTEGER PRIMARY KEY, number BIGINT)"))
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
            self.assertFalse(widen_column(conn, state, 20))

    def test_widen_skipped_when_already_target_length(self) -> None:
        seed_login(self.engine, [])
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
            self.assertFalse(widen_column(conn, state, 20))

    def test_apply_unique_creates_index_once(self) -> None:
        seed_login(self.engine, [(1, "555-0100"), (2, "555-0200")])
        with self.engine.connect() as conn:
            state = inspect_column(conn, "login", "number")
            self.assertTrue(apply_unique_constraint(conn, state, "number", 20))

            state = inspect_column(conn, "login", "number")
            self.assertEqual(state.unique_indexes, ["number"])
            self.assertFalse(apply_unique_constraint(conn, state, "number", 20))

    def test_column_state_to_dict(self) -> None:
        seed_login(self.engine, [], unique_index=True)
        with self.engine.connect() as conn:
            data = inspect_column(conn, "login", "number").to_dict()
        self.assertEqual(data["table"], "login")
        self.assertTrue(data["is_unique"])
        self.assertEqual(data["length"], 20)


if __name__ == "__main__":
    unittest.main()
