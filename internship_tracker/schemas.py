from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from internship_tracker.models import (
    AttendanceStatus,
    LeaveStatus,
    LeaveType,
    UserRole,
)


class MessageResponse(BaseModel):
    message: str


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class LoginUser(BaseModel):
    id: int
    name: str
    role: UserRole


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: LoginUser


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)
    student_id: str = Field(min_length=1, max_length=64)
    role: str | None = None


class RegisterResponse(BaseModel):
    message: str
    user_id: int


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class DepartmentRead(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class SakaUpsert(BaseModel):
    saka_name: str = Field(min_length=1, max_length=255)


class SakaRead(BaseModel):
    id: int
    saka_name: str

    model_config = ConfigDict(from_attributes=True)


class LocationUpsert(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=1000)


class LocationRead(BaseModel):
    id: int
    name: str
    address: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)
    role: str = Field(min_length=1)
    student_id: str | None = Field(default=None, max_length=64)
    department_id: int | None = Field(default=None, ge=1)
    location_id: int | None = Field(default=None, ge=1)
    saka_id: int | None = Field(default=None, ge=1)


class UserUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, min_length=1, max_length=128)
    role: str | None = None
    student_id: str | None = Field(default=None, max_length=64)
    department_id: int | None = Field(default=None, ge=1)
    location_id: int | None = Field(default=None, ge=1)
    saka_id: int | None = Field(default=None, ge=1)


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, min_length=1, max_length=128)


class UserSummaryRead(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    student_id: str | None = None
    department_id: int | None = None
    location_id: int | None = None
    saka_id: int | None = None
    department: DepartmentRead | None = None
    location: LocationRead | None = None
    saka: SakaRead | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CheckInRequest(BaseModel):
    # data URL ("data:image/jpeg;base64,...") or bare base64
    photo: str | None = None


class AttendanceRead(BaseModel):
    id: int
    user_id: int
    date: datetime
    check_in: datetime | None = None
    check_out: datetime | None = None
    status: AttendanceStatus
    is_late: bool
    check_in_photo: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceUserRef(BaseModel):
    name: str
    student_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class MonthlyReportRow(AttendanceRead):
    user: AttendanceUserRef


class AbsenceCreateRequest(BaseModel):
    user_id: int = Field(ge=1)
    date: date


class AttendanceManualCreateRequest(BaseModel):
    user_id: int = Field(ge=1)
    date: date
    check_in: datetime | None = None
    check_out: datetime | None = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    is_late: bool | None = None


class AttendanceUpdateRequest(BaseModel):
    check_in: datetime | None = None
    check_out: datetime | None = None
    status: AttendanceStatus | None = None
    is_late: bool | None = None


class LeaveCreateRequest(BaseModel):
    start_date: date
    end_date: date
    type: LeaveType
    reason: str | None = Field(default=None, max_length=2000)


class LeaveRead(BaseModel):
    id: int
    user_id: int
    start_date: date
    end_date: date
    type: LeaveType
    reason: str | None = None
    status: LeaveStatus
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LeaveWithUserRead(LeaveRead):
    user: UserSummaryRead | None = None


class LeaveStatusUpdateRequest(BaseModel):
    status: LeaveStatus


class DashboardStatsRead(BaseModel):
    total_users: int
    total_departments: int
    check_ins_today: int
    absent_today: int
    pending_leaves: int


class StatusCounts(BaseModel):
    PRESENT: int = 0
    ABSENT: int = 0
    LATE: int = 0
    LEAVE: int = 0


class MonthlyTrendItem(BaseModel):
    month: int
    year: int
    present: int
    late: int
    absent: int


class StudentStatsItem(BaseModel):
    id: int
    name: str
    email: str
    department_name: str | None = None
    stats: StatusCounts


class PaginationRead(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class StudentStatsResponse(BaseModel):
    students: list[StudentStatsItem] = Field(default_factory=list)
    pagination: PaginationRead
