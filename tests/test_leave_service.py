from __future__ import annotations

import unittest
from datetime import date
from types import SimpleNamespace

from internship_tracker.errors import ApiError
from internship_tracker.models import LeaveRequest, LeaveStatus, LeaveType
from internship_tracker.schemas import LeaveCreateRequest
from internship_tracker.services.leaves import create_leave_request, delete_leave, update_leave_status


class _DummyDB:
    def __init__(self, leave: LeaveRequest | None = None) -> None:
        self.leave = leave
        self.added: list[object] = []
        self.deleted: list[object] = []
        self.executed: list[object] = []
        self.commits = 0
        self.rollbacks = 0
        self.updated_rows = 1

    def get(self, model, pk):  # type: ignore[no-untyped-def]
        if model is LeaveRequest and self.leave is not None and self.leave.id == pk:
            return self.leave
        return None

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def delete(self, obj: object) -> None:
        self.deleted.append(obj)

    def execute(self, statement):  # type: ignore[no-untyped-def]
        self.executed.append(statement)
        return SimpleNamespace(rowcount=self.updated_rows)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def refresh(self, _obj: object) -> None:
        return


def _leave(status: LeaveStatus) -> LeaveRequest:
    return LeaveRequest(
        id=11,
        user_id=5,
        start_date=date(2026, 3, 2),
        end_date=date(2026, 3, 3),
        type=LeaveType.SICK,
        status=status,
    )


class LeaveServiceTests(unittest.TestCase):
    def test_new_leave_request_starts_pending(self) -> None:
        db = _DummyDB()
        payload = LeaveCreateRequest(
            start_date=date(2026, 3, 2),
            end_date=date(2026, 3, 2),
            type=LeaveType.PERSONAL,
            reason="Family event",
        )

        leave = create_leave_request(db, user_id=5, payload=payload)

        self.assertEqual(leave.status, LeaveStatus.PENDING)
        self.assertEqual(leave.user_id, 5)
        self.assertEqual(db.added, [leave])

    def test_end_before_start_is_rejected(self) -> None:
        db = _DummyDB()
        payload = LeaveCreateRequest(
            start_date=date(2026, 3, 5),
            end_date=date(2026, 3, 4),
            type=LeaveType.SICK,
        )
        with self.assertRaises(ApiError) as exc:
            create_leave_request(db, user_id=5, payload=payload)
        self.assertEqual(exc.exception.code, "INVALID_DATE_RANGE")
        self.assertEqual(db.added, [])

    def test_pending_can_be_approved(self) -> None:
        db = _DummyDB(_leave(LeaveStatus.PENDING))
        leave = update_leave_status(db, 11, LeaveStatus.APPROVED)
        self.assertEqual(leave.status, LeaveStatus.APPROVED)
        self.assertEqual(db.commits, 1)

    def test_pending_can_be_rejected(self) -> None:
        db = _DummyDB(_leave(LeaveStatus.PENDING))
        leave = update_leave_status(db, 11, LeaveStatus.REJECTED)
        self.assertEqual(leave.status, LeaveStatus.REJECTED)

    def test_decided_leave_cannot_change_again(self) -> None:
        for current in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
            db = _DummyDB(_leave(current))
            with self.assertRaises(ApiError) as exc:
                update_leave_status(db, 11, LeaveStatus.APPROVED)
            self.assertEqual(exc.exception.code, "INVALID_STATUS_TRANSITION")
            self.assertEqual(db.leave.status, current)

    def test_status_update_only_matches_pending_rows(self) -> None:
        db = _DummyDB(_leave(LeaveStatus.PENDING))
        update_leave_status(db, 11, LeaveStatus.APPROVED)

        self.assertEqual(len(db.executed), 1)
        sql = str(db.executed[0])
        self.assertIn("UPDATE leave_requests", sql)
        self.assertIn("leave_requests.status = ", sql)
        self.assertIn(LeaveStatus.PENDING, db.executed[0].compile().params.values())

    def test_leave_decided_concurrently_is_not_overwritten(self) -> None:
        db = _DummyDB(_leave(LeaveStatus.PENDING))
        # another admin approved it after this request loaded the row
        db.updated_rows = 0

        with self.assertRaises(ApiError) as exc:
            update_leave_status(db, 11, LeaveStatus.REJECTED)

        self.assertEqual(exc.exception.code, "INVALID_STATUS_TRANSITION")
        self.assertEqual(db.rollbacks, 1)
        self.assertEqual(db.commits, 0)
        self.assertEqual(db.leave.status, LeaveStatus.PENDING)

    def test_pending_is_not_a_valid_target(self) -> None:
        db = _DummyDB(_leave(LeaveStatus.PENDING))
        with self.assertRaises(ApiError) as exc:
            update_leave_status(db, 11, LeaveStatus.PENDING)
        self.assertEqual(exc.exception.code, "INVALID_STATUS")

    def test_missing_leave(self) -> None:
        db = _DummyDB()
        with self.assertRaises(ApiError) as exc:
            update_leave_status(db, 99, LeaveStatus.APPROVED)
        self.assertEqual(exc.exception.status_code, 404)
        with self.assertRaises(ApiError):
            delete_leave(db, 99)

    def test_delete_leave(self) -> None:
        leave = _leave(LeaveStatus.PENDING)
        db = _DummyDB(leave)
        delete_leave(db, 11)
        self.assertEqual(db.deleted, [leave])


if __name__ == "__main__":
    unittest.main()
