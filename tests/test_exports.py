from __future__ import annotations

import unittest
from datetime import datetime, timezone
from io import BytesIO
from unittest.mock import patch

from openpyxl import load_workbook

from internship_tracker.models import Attendance, AttendanceStatus, User, UserRole
from internship_tracker.services.exports import REPORT_HEADERS, build_monthly_report_xlsx_bytes


def _attendance(
    attendance_id: int,
    *,
    user: User,
    day: int,
    status: AttendanceStatus,
    check_in: datetime | None = None,
    is_late: bool = False,
) -> Attendance:
    row = Attendance(
        id=attendance_id,
        user_id=user.id,
        date=datetime(2026, 3, day, tzinfo=timezone.utc),
        check_in=check_in,
        status=status,
        is_late=is_late,
    )
    row.user = user
    return row


class MonthlyReportExportTests(unittest.TestCase):
    def test_workbook_layout_and_summary(self) -> None:
        student = User(id=5, name="Rina", email="rina@example.com", role=UserRole.STUDENT, password_hash="x", student_id="S-05")
        rows = [
            _attendance(
                1,
                user=student,
                day=2,
                status=AttendanceStatus.PRESENT,
                check_in=datetime(2026, 3, 2, 1, 15, tzinfo=timezone.utc),
            ),
            _attendance(
                2,
                user=student,
                day=3,
                status=AttendanceStatus.PRESENT,
                check_in=datetime(2026, 3, 3, 2, 30, tzinfo=timezone.utc),
                is_late=True,
            ),
            _attendance(3, user=student, day=4, status=AttendanceStatus.ABSENT),
        ]

        with patch("internship_tracker.services.exports.monthly_report", return_value=rows):
            payload = build_monthly_report_xlsx_bytes(object(), year=2026, month=3)  # type: ignore[arg-type]

        ws = load_workbook(BytesIO(payload)).active
        self.assertEqual(ws.title, "2026-03")
        self.assertEqual([cell.value for cell in ws[3]], REPORT_HEADERS)
        self.assertEqual(
            [cell.value for cell in ws[4]],
            ["2026-03-02", "S-05", "Rina", "08:15", "-", "PRESENT", "NO"],
        )
        self.assertEqual(ws.cell(row=5, column=4).value, "09:30")
        self.assertEqual(ws.cell(row=5, column=7).value, "YES")
        self.assertEqual(ws.cell(row=6, column=6).value, "ABSENT")

        summary = {ws.cell(row=r, column=1).value: ws.cell(row=r, column=2).value for r in range(8, 11)}
        self.assertEqual(summary, {"Present": 2, "Absent": 1, "Late": 1})

    def test_empty_month_still_produces_header(self) -> None:
        with patch("internship_tracker.services.exports.monthly_report", return_value=[]):
            payload = build_monthly_report_xlsx_bytes(object(), year=2026, month=1)  # type: ignore[arg-type]

        ws = load_workbook(BytesIO(payload)).active
        self.assertEqual(ws.cell(row=1, column=1).value, "Monthly attendance report 2026-01")
        self.assertEqual(ws.cell(row=3, column=1).value, "Date")


if __name__ == "__main__":
    unittest.main()
