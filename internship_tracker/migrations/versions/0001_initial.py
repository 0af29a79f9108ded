"""Initial internship attendance schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM(
    "STUDENT",
    "TEACHER",
    "ADMIN",
    name="user_role",
    create_type=False,
)
attendance_status = postgresql.ENUM(
    "PRESENT",
    "ABSENT",
    name="attendance_status",
    create_type=False,
)
leave_type = postgresql.ENUM(
    "SICK",
    "PERSONAL",
    name="leave_type",
    create_type=False,
)
leave_status = postgresql.ENUM(
    "PENDING",
    "APPROVED",
    "REJECTED",
    name="leave_status",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    user_role.create(bind, checkfirst=True)
    attendance_status.create(bind, checkfirst=True)
    leave_type.create(bind, checkfirst=True)
    leave_status.create(bind, checkfirst=True)

    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("name", name="departments_name_key"),
    )

    op.create_table(
        "sakas",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("saka_name", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("saka_name", name="sakas_saka_name_key"),
    )

    op.create_table(
        "internship_locations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.String(length=1000), nullable=True),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default=sa.text("'STUDENT'")),
        sa.Column("student_id", sa.String(length=64), nullable=True),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("saka_id", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["location_id"], ["internship_locations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["saka_id"], ["sakas.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_department_id", "users", ["department_id"], unique=False)
    op.create_index("ix_users_location_id", "users", ["location_id"], unique=False)
    op.create_index("ix_users_saka_id", "users", ["saka_id"], unique=False)

    op.create_table(
        "attendances",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", attendance_status, nullable=False, server_default=sa.text("'PRESENT'")),
        sa.Column("is_late", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("check_in_photo", sa.String(length=1024), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "date", name="uq_attendances_user_date"),
    )
    op.create_index("ix_attendances_user_id", "attendances", ["user_id"], unique=False)
    op.create_index("ix_attendances_date", "attendances", ["date"], unique=False)

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("type", leave_type, nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", leave_status, nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_leave_requests_user_id", "leave_requests", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_leave_requests_user_id", table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_index("ix_attendances_date", table_name="attendances")
    op.drop_index("ix_attendances_user_id", table_name="attendances")
    op.drop_table("attendances")
    op.drop_index("ix_users_saka_id", table_name="users")
    op.drop_index("ix_users_location_id", table_name="users")
    op.drop_index("ix_users_department_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("internship_locations")
    op.drop_table("sakas")
    op.drop_table("departments")

    bind = op.get_bind()
    leave_status.drop(bind, checkfirst=True)
    leave_type.drop(bind, checkfirst=True)
    attendance_status.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
