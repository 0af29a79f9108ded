from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import datetime, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient

from internship_tracker.db import get_db
from internship_tracker.main import app
from internship_tracker.models import Attendance, AttendanceStatus, User, UserRole
from internship_tracker.security import create_access_token


def _override_get_db(fake_db):
    def _override() -> Generator[object, None, None]:
        yield fake_db

    return _override


def _auth_headers(user_id: int, role: UserRole) -> dict[str, str]:
    user = User(id=user_id, name=f"{role.value.title()} {user_id}", email=f"u{user_id}@example.com", role=role)
    token, _claims = create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


class _ScalarResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):  # type: ignore[no-untyped-def]
        return self._rows


class _FakeAttendanceDB:
    def __init__(self, *, existing: Attendance | None = None, rows: list[Attendance] | None = None):
        self.existing = existing
        self.listed = rows or []
        self.rows: list[object] = []

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        return self.existing

    def scalars(self, _statement):  # type: ignore[no-untyped-def]
        return _ScalarResult(self.listed)

    def get(self, model, pk):  # type: ignore[no-untyped-def]
        return None

    def add(self, obj: object) -> None:
        self.rows.append(obj)

    def commit(self) -> None:
        return

    def rollback(self) -> None:
        return

    def refresh(self, obj: object) -> None:
        if getattr(obj, "id", None) is None:
            obj.id = 501  # type: ignore[attr-defined]


class AttendanceEndpointTests(unittest.TestCase):
    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_student_check_in(self) -> None:
        fake_db = _FakeAttendanceDB()
        app.dependency_overrides[get_db] = _override_get_db(fake_db)
        client = TestClient(app)

        response = client.post("/api/attendance/check-in", headers=_auth_headers(5, UserRole.STUDENT))

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["id"], 501)
        self.assertEqual(payload["user_id"], 5)
        self.assertEqual(payload["status"], "PRESENT")
        self.assertIsNotNone(payload["check_in"])
        self.assertIsNone(payload["check_out"])
        self.assertIsInstance(payload["is_late"], bool)

    def test_duplicate_check_in_returns_400(self) -> None:
        existing = Attendance(id=9, user_id=5, date=datetime(2026, 3, 10, tzinfo=timezone.utc))
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB(existing=existing))
        client = TestClient(app)

        response = client.post("/api/attendance/check-in", json={}, headers=_auth_headers(5, UserRole.STUDENT))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "ALREADY_CHECKED_IN")
        self.assertEqual(response.json()["error"], "You have already checked in today.")

    def test_check_out_without_check_in(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        response = client.post("/api/attendance/check-out", headers=_auth_headers(5, UserRole.STUDENT))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "CHECKIN_REQUIRED")

    def test_teacher_cannot_check_in(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        response = client.post("/api/attendance/check-in", headers=_auth_headers(2, UserRole.TEACHER))

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "FORBIDDEN")
        self.assertEqual(response.json()["error"], "Access denied. Insufficient permissions.")

    def test_my_history_lists_rows(self) -> None:
        rows = [
            Attendance(
                id=2,
                user_id=5,
                date=datetime(2026, 3, 11, tzinfo=timezone.utc),
                check_in=datetime(2026, 3, 11, 1, 0, tzinfo=timezone.utc),
                status=AttendanceStatus.PRESENT,
                is_late=False,
            ),
            Attendance(
                id=1,
                user_id=5,
                date=datetime(2026, 3, 10, tzinfo=timezone.utc),
                status=AttendanceStatus.ABSENT,
                is_late=False,
            ),
        ]
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB(rows=rows))
        client = TestClient(app)

        response = client.get("/api/attendance/my-history", headers=_auth_headers(5, UserRole.STUDENT))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["id"] for item in response.json()], [2, 1])

    def test_student_cannot_view_other_students(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        response = client.get("/api/students/6/attendance", headers=_auth_headers(5, UserRole.STUDENT))

        self.assertEqual(response.status_code, 403)

    def test_monthly_report_requires_month_and_year(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        response = client.get(
            "/api/attendance/monthly-report",
            params={"month": 3},
            headers=_auth_headers(2, UserRole.TEACHER),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "MONTH_YEAR_REQUIRED")

    def test_monthly_report_rejects_out_of_range_month(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        response = client.get(
            "/api/attendance/monthly-report",
            params={"month": 13, "year": 2026},
            headers=_auth_headers(1, UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")

    def test_monthly_reports_reject_five_digit_year(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        for path in ("/api/attendance/monthly-report", "/api/attendance/monthly-report.xlsx"):
            response = client.get(path, params={"month": 3, "year": 10000}, headers=_auth_headers(1, UserRole.ADMIN))

            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
            self.assertIn("year", response.json()["error"])

    def test_monthly_report_includes_user_reference(self) -> None:
        student = User(id=5, name="Rina", email="rina@example.com", role=UserRole.STUDENT, student_id="S-05")
        row = Attendance(
            id=3,
            user_id=5,
            date=datetime(2026, 3, 2, tzinfo=timezone.utc),
            status=AttendanceStatus.PRESENT,
            is_late=True,
        )
        row.user = student
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        with patch("internship_tracker.routers.attendance.monthly_report", return_value=[row]) as report_mock:
            response = client.get(
                "/api/attendance/monthly-report",
                params={"month": 3, "year": 2026},
                headers=_auth_headers(1, UserRole.ADMIN),
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]["user"], {"name": "Rina", "student_id": "S-05"})
        self.assertEqual(report_mock.call_args.kwargs, {"year": 2026, "month": 3})

    def test_monthly_report_xlsx_download(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        with patch(
            "internship_tracker.routers.attendance.build_monthly_report_xlsx_bytes",
            return_value=b"xlsx-bytes",
        ):
            response = client.get(
                "/api/attendance/monthly-report.xlsx",
                params={"month": 3, "year": 2026},
                headers=_auth_headers(2, UserRole.TEACHER),
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"xlsx-bytes")
        self.assertIn("attendance-2026-03.xlsx", response.headers["content-disposition"])

    def test_absence_body_validation(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        response = client.post(
            "/api/attendance/absent",
            json={"user_id": "abc", "date": "2026-03-10"},
            headers=_auth_headers(1, UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")

    def test_absence_for_unknown_user(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeAttendanceDB())
        client = TestClient(app)

        response = client.post(
            "/api/attendance/absent",
            json={"user_id": 77, "date": "2026-03-10"},
            headers=_auth_headers(1, UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "USER_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
