"""initial timetable schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("CURRENT_TIMESTAMP")
TRUE = sa.text("1")
FALSE = sa.text("0")


def upgrade():
    op.create_table(
        "roles",
        sa.Column("role_id", sa.Integer(), primary_key=True),
        sa.Column("role_name", sa.String(length=20), nullable=False, unique=True),
    )

    op.create_table(
        "departments",
        sa.Column("department_id", sa.Integer(), primary_key=True),
        sa.Column("department_code", sa.String(length=10), nullable=False, unique=True),
        sa.Column("department_name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=TRUE),
    )

    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False, unique=True),
        sa.Column("email", sa.String(length=120), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=FALSE),
        sa.Column("login_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_attempt_time", sa.DateTime(), nullable=True),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["role_id"], ["roles.role_id"]),
        sa.ForeignKeyConstraint(["approved_by"], ["users.user_id"]),
    )

    op.create_table(
        "admin_profiles",
        sa.Column("admin_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("employee_id", sa.String(length=20), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("designation", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"]),
    )

    op.create_table(
        "faculty",
        sa.Column("faculty_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("employee_id", sa.String(length=20), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=False),
        sa.Column("designation", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("specialization", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"]),
    )

    op.create_table(
        "students",
        sa.Column("student_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("student_number", sa.String(length=20), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=False),
        sa.Column("year_of_study", sa.Integer(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=True, server_default="1"),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"]),
    )

    op.create_table(
        "subjects",
        sa.Column("subject_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_code", sa.String(length=20), nullable=False),
        sa.Column("subject_name", sa.String(length=100), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("duration_hours", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="theory"),
        sa.Column("department", sa.String(length=100), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("year_level", sa.Integer(), nullable=False),
        sa.Column("prerequisites", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("syllabus", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=TRUE),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["department_id"], ["departments.department_id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.user_id"]),
        sa.UniqueConstraint("subject_code", name="uq_subject_code"),
    )
    op.create_index("ix_subjects_department", "subjects", ["department"])

    op.create_table(
        "faculty_subjects",
        sa.Column("assignment_id", sa.Integer(), primary_key=True),
        sa.Column("faculty_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("max_students", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("assigned_by", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=TRUE),
        sa.Column("assigned_date", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["faculty_id"], ["faculty.faculty_id"]),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.subject_id"]),
        sa.ForeignKeyConstraint(["assigned_by"], ["users.user_id"]),
        sa.UniqueConstraint("faculty_id", "subject_id", name="uq_faculty_subject"),
    )

    op.create_table(
        "enrollments",
        sa.Column("enrollment_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="enrolled"),
        sa.Column("enrolled_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["student_id"], ["students.student_id"]),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.subject_id"]),
    )

    op.create_table(
        "timetables",
        sa.Column("timetable_id", sa.Integer(), primary_key=True),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("faculty_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("room", sa.String(length=50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=TRUE),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.subject_id"]),
        sa.ForeignKeyConstraint(["faculty_id"], ["faculty.faculty_id"]),
    )

    op.create_table(
        "audit_logs",
        sa.Column("audit_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("table_name", sa.String(length=50), nullable=True),
        sa.Column("record_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"]),
    )


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("timetables")
    op.drop_table("enrollments")
    op.drop_table("faculty_subjects")
    op.drop_index("ix_subjects_department", table_name="subjects")
    op.drop_table("subjects")
    op.drop_table("students")
    op.drop_table("faculty")
    op.drop_table("admin_profiles")
    op.drop_table("users")
    op.drop_table("departments")
    op.drop_table("roles")
