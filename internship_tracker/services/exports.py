from __future__ import annotations

from collections import Counter
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from sqlalchemy.orm import Session

from internship_tracker.models import Attendance, AttendanceStatus
from internship_tracker.services.attendance import monthly_report
from internship_tracker.services.day_keys import local_date_of_key, local_wall_time

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

REPORT_HEADERS = [
    "Date",
    "Student ID",
    "Name",
    "Check-in",
    "Check-out",
    "Status",
    "Late",
]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
WARNING_FILL = PatternFill(fill_type="solid", fgColor="FFF3CD")
ALERT_FILL = PatternFill(fill_type="solid", fgColor="FDE2E4")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def _local_hhmm(value: datetime | None) -> str:
    if value is None:
        return "-"
    return local_wall_time(value).strftime("%H:%M")


def _style_header(ws: Worksheet, row: int) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _report_row(attendance: Attendance) -> list[object]:
    user = attendance.user
    return [
        local_date_of_key(attendance.date).isoformat(),
        (user.student_id if user is not None else None) or "-",
        user.name if user is not None else f"#{attendance.user_id}",
        _local_hhmm(attendance.check_in),
        _local_hhmm(attendance.check_out),
        attendance.status.value,
        "YES" if attendance.is_late else "NO",
    ]


def write_monthly_report_sheet(ws: Worksheet, rows: list[Attendance], *, year: int, month: int) -> None:
    ws.title = f"{year}-{month:02d}"
    ws.cell(row=1, column=1, value=f"Monthly attendance report {year}-{month:02d}").font = TITLE_FONT
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(REPORT_HEADERS))

    header_row = 3
    ws.append([])
    ws.append(REPORT_HEADERS)
    _style_header(ws, header_row)

    for attendance in rows:
        ws.append(_report_row(attendance))

    data_end_row = ws.max_row
    for row_idx in range(header_row + 1, data_end_row + 1):
        status_value = ws.cell(row=row_idx, column=6).value
        late_value = ws.cell(row=row_idx, column=7).value
        if status_value == AttendanceStatus.ABSENT.value:
            row_fill = ALERT_FILL
        elif late_value == "YES":
            row_fill = WARNING_FILL
        elif row_idx % 2 == 0:
            row_fill = ZEBRA_FILL
        else:
            row_fill = None
        for col_idx in range(1, len(REPORT_HEADERS) + 1):
            cell = ws.cell(row=row_idx, column=col_idx)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal="left", vertical="center")
            if row_fill is not None:
                cell.fill = row_fill

    if data_end_row > header_row:
        ws.auto_filter.ref = f"A{header_row}:{get_column_letter(len(REPORT_HEADERS))}{data_end_row}"
    ws.freeze_panes = f"A{header_row + 1}"

    totals = Counter(attendance.status.value for attendance in rows)
    late_total = sum(1 for attendance in rows if attendance.is_late)
    summary_start = data_end_row + 2
    for offset, (label, value) in enumerate(
        (
            ("Present", totals.get(AttendanceStatus.PRESENT.value, 0)),
            ("Absent", totals.get(AttendanceStatus.ABSENT.value, 0)),
            ("Late", late_total),
        )
    ):
        ws.cell(row=summary_start + offset, column=1, value=label).font = BOLD_FONT
        ws.cell(row=summary_start + offset, column=2, value=value)

    _auto_width(ws)


def build_monthly_report_xlsx_bytes(db: Session, *, year: int, month: int) -> bytes:
    rows = monthly_report(db, year=year, month=month)
    wb = Workbook()
    write_monthly_report_sheet(wb.active, rows, year=year, month=month)
    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
