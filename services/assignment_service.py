import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import Faculty, FacultyAssignment, Subject, User
from services.audit_service import record_audit
from services.gateway import Database
from services.results import ServiceResult

logger = logging.getLogger(__name__)

MIN_STUDENTS = 1
MAX_STUDENTS = 200

DUPLICATE_ASSIGNMENT_MESSAGE = "This faculty member is already assigned to this subject."


def _to_int(value):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _full_name(row, first="first_name", last="last_name"):
    parts = [row.get(first) or "", row.get(last) or ""]
    return " ".join(p for p in parts if p).strip()


class AssignmentManager:
    """Links faculty members to subjects through ``faculty_subjects``."""

    def __init__(self, database=None):
        self.db = database or Database()

    def assign_faculty(self, faculty_id, subject_id, assigned_by=None, max_students=None, notes=None):
        errors = {}
        faculty_id = _to_int(faculty_id)
        subject_id = _to_int(subject_id)
        if not subject_id:
            errors["subject_id"] = "Subject is required."
        if not faculty_id:
            errors["faculty_id"] = "Faculty is required."

        if max_students in (None, ""):
            max_students = current_app.config.get("DEFAULT_MAX_STUDENTS", 60)
        max_students = _to_int(max_students)
        if max_students is None or not MIN_STUDENTS <= max_students <= MAX_STUDENTS:
            errors["max_students"] = f"Maximum students must be between {MIN_STUDENTS} and {MAX_STUDENTS}."
        if errors:
            return ServiceResult.invalid(errors)

        subject = db.session.get(Subject, subject_id)
        if subject is None or not subject.is_active:
            return ServiceResult.invalid({"subject_id": "Selected subject is not available."})

        faculty = db.session.get(Faculty, faculty_id)
        if faculty is None or faculty.user is None or faculty.user.status != User.STATUS_ACTIVE:
            return ServiceResult.invalid({"faculty_id": "Selected faculty member is not available."})

        notes = (notes or "").strip() or None
        assignment = FacultyAssignment.query.filter_by(faculty_id=faculty_id, subject_id=subject_id).first()
        if assignment is not None and assignment.is_active:
            return ServiceResult.conflict(DUPLICATE_ASSIGNMENT_MESSAGE)

        try:
            if assignment is None:
                assignment = FacultyAssignment(faculty_id=faculty_id, subject_id=subject_id)
                db.session.add(assignment)
            # A previously removed pair is reactivated in place
            assignment.max_students = max_students
            assignment.notes = notes
            assignment.assigned_by = assigned_by
            assignment.assigned_date = db.func.now()
            assignment.is_active = True
            db.session.flush()

            record_audit(
                assigned_by, "ASSIGN_FACULTY", "faculty_subjects", assignment.assignment_id,
                f"{faculty.full_name} assigned to {subject.subject_code}"
            )
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning("Concurrent assignment of faculty %s to subject %s", faculty_id, subject_id)
            return ServiceResult.conflict(DUPLICATE_ASSIGNMENT_MESSAGE)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error assigning faculty %s to subject %s", faculty_id, subject_id)
            return ServiceResult.failure()

        logger.info("Faculty %s assigned to subject %s", faculty_id, subject_id)
        return ServiceResult.success(
            f"Faculty successfully assigned to subject! Assignment ID: {assignment.assignment_id}",
            id=assignment.assignment_id,
        )

    def remove_faculty(self, faculty_id, subject_id, user_id=None):
        assignment = FacultyAssignment.query.filter_by(
            faculty_id=faculty_id, subject_id=subject_id, is_active=True
        ).first()
        if assignment is None:
            return ServiceResult.not_found("Faculty assignment not found")

        scheduled = self.db.fetch_value("""
            SELECT COUNT(*) FROM timetables
            WHERE faculty_id = :fid AND subject_id = :sid AND is_active = :active
        """, {"fid": faculty_id, "sid": subject_id, "active": True}, default=0)
        if scheduled:
            return ServiceResult.conflict("Cannot remove assignment: faculty is scheduled to teach this subject")

        try:
            assignment.is_active = False
            record_audit(
                user_id, "REMOVE_FACULTY", "faculty_subjects", assignment.assignment_id,
                f"Faculty {faculty_id} removed from subject {subject_id}"
            )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error removing faculty %s from subject %s", faculty_id, subject_id)
            return ServiceResult.failure()

        logger.info("Faculty %s removed from subject %s", faculty_id, subject_id)
        return ServiceResult.success("Faculty assignment removed successfully")

    def get_assigned_faculty(self, subject_id):
        try:
            rows = self.db.fetch_all("""
                SELECT f.faculty_id, f.employee_id, f.first_name, f.last_name,
                       f.department, f.designation, f.specialization,
                       fs.assignment_id, fs.assigned_date, fs.max_students, fs.notes
                FROM faculty f
                JOIN faculty_subjects fs ON f.faculty_id = fs.faculty_id
                WHERE fs.subject_id = :sid AND fs.is_active = :active
                ORDER BY fs.assigned_date DESC, f.first_name ASC
            """, {"sid": subject_id, "active": True})
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error fetching assigned faculty for subject %s", subject_id)
            return []
        for row in rows:
            row["full_name"] = _full_name(row)
        return rows

    def get_available_faculty(self, subject_id=None, department=""):
        """Active faculty with their current load, excluding those already on ``subject_id``."""
        where = ["u.status = :status"]
        params = {"status": User.STATUS_ACTIVE, "active": True}
        if subject_id:
            where.append("""f.faculty_id NOT IN (
                SELECT faculty_id FROM faculty_subjects
                WHERE subject_id = :sid AND is_active = :active
            )""")
            params["sid"] = subject_id
        if department:
            where.append("f.department = :department")
            params["department"] = department

        try:
            rows = self.db.fetch_all(f"""
                SELECT f.faculty_id, f.employee_id, f.first_name, f.last_name,
                       f.department, f.designation, f.specialization,
                       COUNT(fs.assignment_id) AS current_assignments
                FROM faculty f
                JOIN users u ON f.user_id = u.user_id
                LEFT JOIN faculty_subjects fs ON f.faculty_id = fs.faculty_id AND fs.is_active = :active
                WHERE {" AND ".join(where)}
                GROUP BY f.faculty_id, f.employee_id, f.first_name, f.last_name,
                         f.department, f.designation, f.specialization
                ORDER BY f.department, f.first_name, f.last_name
            """, params)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error fetching available faculty")
            return []
        for row in rows:
            row["full_name"] = _full_name(row)
        return rows

    def get_recent_assignments(self, limit=None):
        limit = limit or current_app.config.get("RECENT_ASSIGNMENTS_LIMIT", 10)
        try:
            rows = self.db.fetch_all("""
                SELECT fs.assignment_id, fs.faculty_id, fs.subject_id, fs.max_students,
                       fs.notes, fs.assigned_date,
                       s.subject_code, s.subject_name, s.department AS subject_dept,
                       f.first_name, f.last_name, f.employee_id,
                       f.department AS faculty_dept, f.designation,
                       a.first_name AS admin_first_name, a.last_name AS admin_last_name
                FROM faculty_subjects fs
                JOIN subjects s ON fs.subject_id = s.subject_id
                JOIN faculty f ON fs.faculty_id = f.faculty_id
                LEFT JOIN admin_profiles a ON fs.assigned_by = a.user_id
                WHERE fs.is_active = :active
                ORDER BY fs.assigned_date DESC, fs.assignment_id DESC
                LIMIT :limit
            """, {"active": True, "limit": int(limit)})
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error fetching recent assignments")
            return []
        for row in rows:
            row["faculty_name"] = _full_name(row)
            row["assigned_by_name"] = _full_name(row, "admin_first_name", "admin_last_name")
        return rows

    def get_assignments_for_faculty(self, faculty_id):
        return (
            FacultyAssignment.query
            .join(Subject)
            .filter(
                FacultyAssignment.faculty_id == faculty_id,
                FacultyAssignment.is_active.is_(True),
                Subject.is_active.is_(True),
            )
            .order_by(Subject.semester.asc(), Subject.subject_code.asc())
            .all()
        )
