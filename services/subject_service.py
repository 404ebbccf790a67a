"""
Subject management: validation, CRUD, bulk operations and statistics.

Handles every subject-related operation behind the admin screens. Writes
go through the ORM; list and aggregate reads are parameterized SQL through
the gateway.
"""
import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import Department, Enrollment, FacultyAssignment, Subject, TimetableEntry
from services.audit_service import record_audit
from services.gateway import Database
from services.results import ServiceResult

logger = logging.getLogger(__name__)

SUBJECT_CODE_PATTERN = re.compile(r"^[A-Z]{2,5}[0-9]{3,4}$")
SUBJECT_NAME_MAX_LENGTH = 100

REQUIRED_FIELDS = (
    "subject_code", "subject_name", "credits", "duration_hours",
    "department", "semester", "year_level",
)

# field -> (minimum, maximum, label)
NUMERIC_RANGES = {
    "credits": (1, 6, "Credits"),
    "duration_hours": (1, 8, "Duration hours"),
    "semester": (1, 12, "Semester"),
    "year_level": (1, 6, "Year level"),
}

OPTIONAL_TEXT_FIELDS = ("prerequisites", "description", "syllabus")

BULK_ACTIONS = ("activate", "deactivate", "delete")

DUPLICATE_CODE_MESSAGE = "Subject code already exists"
CODE_FORMAT_MESSAGE = (
    "Subject code must follow format: 2-5 letters followed by 3-4 numbers "
    "(e.g., CS101, MATH1001)"
)

SUBJECT_TYPES = [
    {"type": "theory", "label": "Theory"},
    {"type": "practical", "label": "Practical"},
    {"type": "lab", "label": "Laboratory"},
]

YEAR_LEVELS = [{"level": n, "label": f"Year {n}"} for n in range(1, 7)]

_SUBJECT_COLUMNS = (
    "s.subject_id, s.subject_code, s.subject_name, s.credits, s.duration_hours, "
    "s.type, s.department, s.department_id, s.semester, s.year_level, "
    "s.prerequisites, s.description, s.syllabus, s.is_active, s.created_by, "
    "s.created_at, s.updated_at, d.department_name"
)

_SUBJECT_SUMMARY_SQL = f"""
    SELECT {_SUBJECT_COLUMNS},
           COUNT(DISTINCT fs.faculty_id) AS assigned_faculty_count,
           COUNT(DISTINCT e.student_id) AS enrolled_students_count,
           COUNT(DISTINCT t.timetable_id) AS scheduled_classes_count
    FROM subjects s
    LEFT JOIN departments d ON s.department_id = d.department_id
    LEFT JOIN faculty_subjects fs ON s.subject_id = fs.subject_id AND fs.is_active = :active
    LEFT JOIN enrollments e ON s.subject_id = e.subject_id AND e.status = :enrolled
    LEFT JOIN timetables t ON s.subject_id = t.subject_id AND t.is_active = :active
    WHERE {{where}}
    GROUP BY {_SUBJECT_COLUMNS}
    ORDER BY s.subject_code ASC
"""


def _label(field):
    return field.replace("_", " ").capitalize()


def _clean_text(value):
    if value is None:
        return ""
    return str(value).strip()


def _like_pattern(term):
    # "!" is the LIKE escape character in the search query
    escaped = term.replace("!", "!!").replace("%", "!%").replace("_", "!_")
    return f"%{escaped}%"


def _as_bool(value):
    if isinstance(value, bool):
        return value
    return _clean_text(value).lower() in ("1", "true", "on", "yes")


def validate_subject_data(data):
    """Validate raw form data.

    Returns ``(clean, errors)`` where ``clean`` holds typed values and
    ``errors`` maps field names to messages. ``errors`` is empty when the
    data is valid.
    """
    errors = {}
    clean = {}

    missing = [f for f in REQUIRED_FIELDS if not _clean_text(data.get(f))]
    for field in missing:
        errors[field] = f"{_label(field)} is required."
    if missing:
        errors["__all__"] = "Please fill in all required fields: " + ", ".join(_label(f) for f in missing)

    code = _clean_text(data.get("subject_code"))
    if code and not SUBJECT_CODE_PATTERN.match(code):
        errors["subject_code"] = CODE_FORMAT_MESSAGE
    clean["subject_code"] = code

    name = _clean_text(data.get("subject_name"))
    if len(name) > SUBJECT_NAME_MAX_LENGTH:
        errors["subject_name"] = f"Subject name cannot exceed {SUBJECT_NAME_MAX_LENGTH} characters."
    clean["subject_name"] = name

    for field, (low, high, label) in NUMERIC_RANGES.items():
        raw = _clean_text(data.get(field))
        if not raw:
            continue
        try:
            value = int(raw)
        except ValueError:
            errors[field] = f"{label} must be a whole number."
            continue
        if value < low or value > high:
            errors[field] = f"{label} must be between {low} and {high}."
        clean[field] = value

    subject_type = _clean_text(data.get("type")).lower() or "theory"
    if subject_type not in Subject.TYPES:
        errors["type"] = "Subject type must be theory, practical or lab."
    clean["type"] = subject_type

    clean["department"] = _clean_text(data.get("department"))

    for field in OPTIONAL_TEXT_FIELDS:
        clean[field] = _clean_text(data.get(field)) or None

    # Absent on update means keep the stored flag
    if "is_active" in data:
        clean["is_active"] = _as_bool(data.get("is_active"))
    return clean, errors


def _validation_result(errors):
    summary = errors.pop("__all__", None)
    return ServiceResult.invalid(errors, message=summary)


def _is_duplicate_error(exc):
    detail = str(getattr(exc, "orig", exc)).lower()
    return "unique" in detail or "duplicate" in detail


class SubjectManager:
    def __init__(self, database=None):
        self.db = database or Database()

    # =========================================================
    # LOOKUPS
    # =========================================================

    def subject_code_exists(self, subject_code, exclude_id=None):
        # Checked across active and inactive rows to match the unique constraint
        sql = "SELECT COUNT(*) FROM subjects WHERE subject_code = :code"
        params = {"code": subject_code}
        if exclude_id:
            sql += " AND subject_id != :exclude_id"
            params["exclude_id"] = exclude_id
        return self.db.fetch_value(sql, params, default=0) > 0

    def get_department_id(self, department):
        if not department:
            return None
        dept = Department.query.filter(
            (Department.department_name == department) |
            (Department.department_code == department)
        ).first()
        return dept.department_id if dept else None

    def get_subject(self, subject_id):
        return db.session.get(Subject, subject_id)

    # =========================================================
    # CREATE / UPDATE
    # =========================================================

    def create_subject(self, data, user_id=None):
        clean, errors = validate_subject_data(data)
        if errors:
            return _validation_result(errors)

        if self.subject_code_exists(clean["subject_code"]):
            return ServiceResult.invalid({"subject_code": DUPLICATE_CODE_MESSAGE})

        clean.setdefault("is_active", True)
        subject = Subject(
            department_id=self.get_department_id(clean["department"]),
            created_by=user_id,
            **clean
        )
        try:
            db.session.add(subject)
            db.session.flush()
            record_audit(
                user_id, "CREATE_SUBJECT", "subjects", subject.subject_id,
                f"Created subject {subject.subject_code}"
            )
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            if _is_duplicate_error(exc):
                logger.warning("Duplicate subject code on insert: %s", clean["subject_code"])
                return ServiceResult.invalid({"subject_code": DUPLICATE_CODE_MESSAGE})
            logger.exception("Error creating subject %s", clean["subject_code"])
            return ServiceResult.failure()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error creating subject %s", clean["subject_code"])
            return ServiceResult.failure()

        logger.info("Subject created: %s (id=%s)", subject.subject_code, subject.subject_id)
        return ServiceResult.success("Subject created successfully", id=subject.subject_id)

    def update_subject(self, subject_id, data, user_id=None):
        subject = self.get_subject(subject_id)
        if subject is None:
            return ServiceResult.not_found("Subject not found")

        clean, errors = validate_subject_data(data)
        if errors:
            return _validation_result(errors)

        if clean["subject_code"] != subject.subject_code and \
                self.subject_code_exists(clean["subject_code"], exclude_id=subject_id):
            return ServiceResult.invalid({"subject_code": DUPLICATE_CODE_MESSAGE})

        for field, value in clean.items():
            setattr(subject, field, value)
        subject.department_id = self.get_department_id(clean["department"])
        subject.updated_at = db.func.now()

        try:
            record_audit(
                user_id, "UPDATE_SUBJECT", "subjects", subject_id,
                f"Updated subject {subject.subject_code}"
            )
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            if _is_duplicate_error(exc):
                return ServiceResult.invalid({"subject_code": DUPLICATE_CODE_MESSAGE})
            logger.exception("Error updating subject %s", subject_id)
            return ServiceResult.failure()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error updating subject %s", subject_id)
            return ServiceResult.failure()

        logger.info("Subject updated: %s", subject_id)
        return ServiceResult.success("Subject updated successfully", id=subject_id)

    def set_subject_status(self, subject_id, active, user_id=None):
        subject = self.get_subject(subject_id)
        if subject is None:
            return ServiceResult.not_found("Subject not found")

        subject.is_active = bool(active)
        subject.updated_at = db.func.now()
        action = "ACTIVATE_SUBJECT" if active else "DEACTIVATE_SUBJECT"
        try:
            record_audit(user_id, action, "subjects", subject_id, f"{subject.subject_code} is_active={bool(active)}")
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error changing status of subject %s", subject_id)
            return ServiceResult.failure()

        verb = "activated" if active else "deactivated"
        logger.info("Subject %s: %s", verb, subject_id)
        return ServiceResult.success(f"Subject {verb} successfully!", id=subject_id)

    # =========================================================
    # DELETE
    # =========================================================

    def get_related_data(self, subject_id):
        """Dependent-row counts for the delete confirmation and the permanent-delete gate."""
        params = {"sid": subject_id, "active": True, "enrolled": Enrollment.STATUS_ENROLLED}
        assignments = self.db.fetch_row("""
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN is_active = :active THEN 1 ELSE 0 END), 0) AS active
            FROM faculty_subjects
            WHERE subject_id = :sid
        """, params)
        enrollments = self.db.fetch_row("""
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN status = :enrolled THEN 1 ELSE 0 END), 0) AS active
            FROM enrollments
            WHERE subject_id = :sid
        """, params)
        timetables = self.db.fetch_row("""
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN is_active = :active THEN 1 ELSE 0 END), 0) AS active
            FROM timetables
            WHERE subject_id = :sid
        """, params)
        assigned_faculty = self.db.fetch_all("""
            SELECT f.faculty_id, f.first_name, f.last_name, f.employee_id
            FROM faculty_subjects fs
            JOIN faculty f ON fs.faculty_id = f.faculty_id
            WHERE fs.subject_id = :sid AND fs.is_active = :active
            ORDER BY f.first_name, f.last_name
        """, params)

        return {
            "total_assignments": int(assignments["total"]),
            "active_assignments": int(assignments["active"]),
            "total_enrollments": int(enrollments["total"]),
            "active_enrollments": int(enrollments["active"]),
            "total_timetables": int(timetables["total"]),
            "active_timetables": int(timetables["active"]),
            "assigned_faculty": assigned_faculty,
        }

    def delete_subject(self, subject_id, user_id=None, permanent=False):
        subject = self.get_subject(subject_id)
        if subject is None:
            return ServiceResult.not_found("Subject not found")

        code = subject.subject_code
        if not permanent:
            result = self.set_subject_status(subject_id, False, user_id)
            if result.ok:
                result.message = f"Subject '{code}' has been deactivated successfully."
            return result

        try:
            related = self.get_related_data(subject_id)
        except SQLAlchemyError:
            logger.exception("Error checking dependents of subject %s", subject_id)
            return ServiceResult.failure()

        blocking = (
            related["active_assignments"],
            related["active_enrollments"],
            related["active_timetables"],
        )
        if any(blocking):
            return ServiceResult.conflict(
                "Cannot permanently delete subject with active dependents "
                f"({blocking[0]} faculty assignment(s), {blocking[1]} enrollment(s), "
                f"{blocking[2]} timetable entr{'y' if blocking[2] == 1 else 'ies'}). "
                "Please deactivate instead.",
                **related
            )

        try:
            # Only inactive history remains at this point
            FacultyAssignment.query.filter_by(subject_id=subject_id).delete(synchronize_session=False)
            Enrollment.query.filter_by(subject_id=subject_id).delete(synchronize_session=False)
            TimetableEntry.query.filter_by(subject_id=subject_id).delete(synchronize_session=False)
            db.session.delete(subject)
            record_audit(user_id, "DELETE_SUBJECT", "subjects", subject_id, f"Permanently deleted subject {code}")
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error deleting subject %s", subject_id)
            return ServiceResult.failure()

        logger.info("Subject permanently deleted: %s (%s)", subject_id, code)
        return ServiceResult.success(f"Subject '{code}' has been permanently deleted successfully.", id=subject_id)

    # =========================================================
    # BULK
    # =========================================================

    def bulk_action(self, subject_ids, action, user_id=None):
        """Apply activate / deactivate / delete (soft) to every distinct id, all or nothing."""
        if not subject_ids:
            return ServiceResult.invalid({"selected_subjects": "No subjects selected"})
        if action not in BULK_ACTIONS:
            return ServiceResult.invalid({"bulk_action_type": "Invalid action"})

        active = action == "activate"
        errors = []
        touched = []
        seen = set()
        for raw_id in subject_ids:
            try:
                subject_id = int(raw_id)
            except (TypeError, ValueError):
                errors.append(f"Subject ID {raw_id}: Invalid subject ID")
                continue
            if subject_id in seen:
                continue
            seen.add(subject_id)
            subject = self.get_subject(subject_id)
            if subject is None:
                errors.append(f"Subject ID {subject_id}: Subject not found")
                continue
            subject.is_active = active
            subject.updated_at = db.func.now()
            touched.append(subject)

        if errors:
            db.session.rollback()
            return ServiceResult.conflict(
                "Bulk operation failed; no changes were applied. Errors: " + ", ".join(errors),
                success_count=0,
                error_count=len(errors),
            )

        try:
            for subject in touched:
                record_audit(
                    user_id, f"BULK_{action.upper()}_SUBJECT", "subjects", subject.subject_id,
                    f"{subject.subject_code} is_active={active}"
                )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error in bulk %s for subjects %s", action, subject_ids)
            return ServiceResult.failure("Bulk operation failed")

        verb = {"activate": "activated", "deactivate": "deactivated", "delete": "deleted"}[action]
        logger.info("Bulk %s applied to %d subject(s) by user %s", action, len(touched), user_id)
        return ServiceResult.success(
            f"Bulk operation completed. {len(touched)} subject(s) {verb}.",
            success_count=len(touched),
            error_count=0,
        )

    # =========================================================
    # READS
    # =========================================================

    def _faculty_names_by_subject(self):
        rows = self.db.fetch_all("""
            SELECT fs.subject_id, f.first_name, f.last_name
            FROM faculty_subjects fs
            JOIN faculty f ON fs.faculty_id = f.faculty_id
            WHERE fs.is_active = :active
            ORDER BY f.first_name, f.last_name
        """, {"active": True})
        names = {}
        for row in rows:
            names.setdefault(row["subject_id"], []).append(f"{row['first_name']} {row['last_name']}")
        return {sid: ", ".join(n) for sid, n in names.items()}

    def get_all_subjects(self, filters=None, search=""):
        filters = filters or {}
        where = ["1=1"]
        params = {"active": True, "enrolled": Enrollment.STATUS_ENROLLED}

        for key in ("department", "type", "year_level", "semester"):
            value = filters.get(key)
            if value not in (None, ""):
                where.append(f"s.{key} = :{key}")
                params[key] = value

        status = filters.get("status")
        if status in ("active", "inactive"):
            where.append("s.is_active = :status_active")
            params["status_active"] = status == "active"

        search = _clean_text(search)
        if search:
            where.append(
                "(s.subject_code LIKE :search ESCAPE '!' OR s.subject_name LIKE :search ESCAPE '!' "
                "OR s.department LIKE :search ESCAPE '!' OR s.description LIKE :search ESCAPE '!')"
            )
            params["search"] = _like_pattern(search)

        try:
            rows = self.db.fetch_all(_SUBJECT_SUMMARY_SQL.format(where=" AND ".join(where)), params)
            names = self._faculty_names_by_subject()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error fetching subjects")
            return []

        for row in rows:
            row["faculty_names"] = names.get(row["subject_id"], "")
        return rows

    def get_subject_by_id(self, subject_id):
        params = {"active": True, "enrolled": Enrollment.STATUS_ENROLLED, "sid": subject_id}
        try:
            row = self.db.fetch_row(_SUBJECT_SUMMARY_SQL.format(where="s.subject_id = :sid"), params)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error fetching subject %s", subject_id)
            return None
        return row

    def get_subjects_statistics(self):
        params = {"active": True, "enrolled": Enrollment.STATUS_ENROLLED}
        try:
            stats = self.db.fetch_row("""
                SELECT
                    COUNT(*) AS total_subjects,
                    COALESCE(SUM(CASE WHEN type = 'theory' THEN 1 ELSE 0 END), 0) AS theory_subjects,
                    COALESCE(SUM(CASE WHEN type = 'practical' THEN 1 ELSE 0 END), 0) AS practical_subjects,
                    COALESCE(SUM(CASE WHEN type = 'lab' THEN 1 ELSE 0 END), 0) AS lab_subjects,
                    AVG(credits) AS avg_credits,
                    AVG(duration_hours) AS avg_duration
                FROM subjects
                WHERE is_active = :active
            """, params)

            year_rows = self.db.fetch_all("""
                SELECT year_level, COUNT(*) AS subject_count
                FROM subjects
                WHERE is_active = :active
                GROUP BY year_level
            """, params)

            department_breakdown = self.db.fetch_all("""
                SELECT department,
                       COUNT(*) AS subject_count,
                       SUM(credits) AS total_credits
                FROM subjects
                WHERE is_active = :active
                GROUP BY department
                ORDER BY subject_count DESC, department ASC
            """, params)

            faculty_assignments = self.db.fetch_row("""
                SELECT COUNT(DISTINCT fs.subject_id) AS subjects_with_faculty,
                       COUNT(DISTINCT fs.faculty_id) AS assigned_faculty_count,
                       COUNT(fs.assignment_id) AS total_assignments
                FROM subjects s
                JOIN faculty_subjects fs ON s.subject_id = fs.subject_id AND fs.is_active = :active
                WHERE s.is_active = :active
            """, params)

            enrollment_stats = self.db.fetch_row("""
                SELECT COUNT(DISTINCT e.subject_id) AS subjects_with_enrollments,
                       COUNT(e.enrollment_id) AS total_enrollments
                FROM subjects s
                JOIN enrollments e ON s.subject_id = e.subject_id AND e.status = :enrolled
                WHERE s.is_active = :active
            """, params)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error fetching subjects statistics")
            return self.empty_statistics()

        with_enrollments = enrollment_stats["subjects_with_enrollments"] or 0
        enrollment_stats["avg_students_per_subject"] = (
            round(enrollment_stats["total_enrollments"] / with_enrollments, 2) if with_enrollments else 0
        )

        by_year = {int(r["year_level"]): int(r["subject_count"]) for r in year_rows}
        stats = {k: (v if v is not None else 0) for k, v in stats.items()}
        stats["avg_credits"] = round(float(stats["avg_credits"]), 2)
        stats["avg_duration"] = round(float(stats["avg_duration"]), 2)
        for level in range(1, 7):
            stats[f"year_{level}_subjects"] = by_year.get(level, 0)

        stats.update({
            "department_breakdown": department_breakdown,
            "faculty_assignments": faculty_assignments,
            "enrollment_stats": enrollment_stats,
        })
        return stats

    @staticmethod
    def empty_statistics():
        stats = {
            "total_subjects": 0,
            "theory_subjects": 0,
            "practical_subjects": 0,
            "lab_subjects": 0,
            "avg_credits": 0,
            "avg_duration": 0,
            "department_breakdown": [],
            "faculty_assignments": {},
            "enrollment_stats": {},
        }
        for level in range(1, 7):
            stats[f"year_{level}_subjects"] = 0
        return stats

    def get_departments(self):
        """Departments that appear on active subjects, for list filters."""
        try:
            rows = self.db.fetch_all("""
                SELECT DISTINCT department
                FROM subjects
                WHERE is_active = :active AND department IS NOT NULL
                ORDER BY department ASC
            """, {"active": True})
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error fetching departments")
            return []
        return [r["department"] for r in rows]

    def get_department_choices(self):
        """Departments offered on the subject form.

        Uses the departments table and falls back to department names already
        present on subjects and profiles when the table is empty.
        """
        departments = self.db.fetch_all("""
            SELECT DISTINCT department_name, department_code
            FROM departments
            WHERE is_active = :active
            ORDER BY department_name ASC
        """, {"active": True})
        if departments:
            return departments

        return self.db.fetch_all("""
            SELECT DISTINCT department AS department_name, department AS department_code
            FROM (
                SELECT department FROM students WHERE department IS NOT NULL
                UNION
                SELECT department FROM faculty WHERE department IS NOT NULL
                UNION
                SELECT department FROM subjects WHERE department IS NOT NULL
            ) all_departments
            ORDER BY department_name ASC
        """)

    @staticmethod
    def get_subject_types():
        return SUBJECT_TYPES

    @staticmethod
    def get_year_levels():
        return YEAR_LEVELS
