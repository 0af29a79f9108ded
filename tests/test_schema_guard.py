from __future__ import annotations

import unittest
from unittest.mock import patch

from internship_tracker.services.schema_guard import verify_runtime_schema

FULL_COLUMNS = {
    "users": {"id", "email", "password_hash", "role", "saka_id", "location_id"},
    "attendances": {"id", "user_id", "date", "check_in", "check_out", "is_late", "check_in_photo"},
    "leave_requests": {"id", "user_id", "status"},
    "departments": {"id", "name"},
    "sakas": {"id", "saka_name"},
    "internship_locations": {"id", "name"},
    "alembic_version": {"version_num"},
}

FULL_ENUMS = [
    {"name": "user_role", "labels": ["STUDENT", "TEACHER", "ADMIN"]},
    {"name": "leave_status", "labels": ["PENDING", "APPROVED", "REJECTED"]},
]


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(
        self,
        *,
        columns_by_table: dict[str, set[str]],
        enums: list[dict[str, object]],
        unique_constraints: dict[str, list[str]] | None = None,
    ):
        self._columns_by_table = columns_by_table
        self._enums = enums
        self._unique_constraints = (
            unique_constraints if unique_constraints is not None else {"attendances": ["uq_attendances_user_date"]}
        )

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_unique_constraints(self, table_name: str):  # type: ignore[no-untyped-def]
        return [{"name": name} for name in self._unique_constraints.get(table_name, [])]

    def get_enums(self):  # type: ignore[no-untyped-def]
        return self._enums


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(columns_by_table=FULL_COLUMNS, enums=FULL_ENUMS)
        fake_engine = _FakeEngine("0002_audit_logs")

        with patch("internship_tracker.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])

    def test_verify_runtime_schema_reports_missing_columns(self) -> None:
        columns = dict(FULL_COLUMNS)
        columns["attendances"] = {"id", "user_id", "date"}
        fake_inspector = _FakeInspector(
            columns_by_table=columns,
            enums=[{"name": "user_role", "labels": ["STUDENT", "ADMIN"]}],
        )
        fake_engine = _FakeEngine("")

        with patch("internship_tracker.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertTrue(any(item.startswith("MISSING_COLUMNS:attendances:check_in") for item in result.issues))
        self.assertIn("MISSING_ENUM_VALUES:user_role:TEACHER", result.issues)
        self.assertIn("ENUM_NOT_FOUND:leave_status", result.warnings)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)

    def test_missing_day_uniqueness_is_an_issue(self) -> None:
        fake_inspector = _FakeInspector(columns_by_table=FULL_COLUMNS, enums=FULL_ENUMS, unique_constraints={})
        fake_engine = _FakeEngine("0002_audit_logs")

        with patch("internship_tracker.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn("MISSING_UNIQUE_CONSTRAINT:attendances:uq_attendances_user_date", result.issues)

    def test_unreachable_database(self) -> None:
        with patch("internship_tracker.services.schema_guard.inspect", side_effect=RuntimeError("down")):
            result = verify_runtime_schema(_FakeEngine("x"))  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertEqual(result.issues, ["DATABASE_UNREACHABLE:RuntimeError"])


if __name__ == "__main__":
    unittest.main()
