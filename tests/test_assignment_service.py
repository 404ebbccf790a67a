from datetime import time

import pytest

from models import FacultyAssignment, TimetableEntry, User
from services.assignment_service import DUPLICATE_ASSIGNMENT_MESSAGE, AssignmentManager
from services.results import CONFLICT, NOT_FOUND, VALIDATION


@pytest.fixture
def assignments(app):
    return AssignmentManager()


def active_pairs(subject_id):
    return FacultyAssignment.query.filter_by(subject_id=subject_id, is_active=True).count()


def test_assign_faculty(assignments, make_subject, faculty, admin_user):
    subject_id = make_subject()

    result = assignments.assign_faculty(faculty.faculty_id, subject_id, admin_user.user_id, "45", "Morning section")

    assert result.ok
    assert result.message == f"Faculty successfully assigned to subject! Assignment ID: {result.id}"
    assignment = FacultyAssignment.query.filter_by(subject_id=subject_id).one()
    assert assignment.max_students == 45
    assert assignment.notes == "Morning section"
    assert assignment.assigned_by == admin_user.user_id


def test_max_students_defaults_to_config(assignments, make_subject, faculty):
    subject_id = make_subject()
    assert assignments.assign_faculty(faculty.faculty_id, subject_id).ok
    assert FacultyAssignment.query.filter_by(subject_id=subject_id).one().max_students == 60


def test_duplicate_active_assignment_rejected(assignments, make_subject, faculty):
    subject_id = make_subject()
    assignments.assign_faculty(faculty.faculty_id, subject_id)

    result = assignments.assign_faculty(faculty.faculty_id, subject_id)

    assert result.kind == CONFLICT
    assert result.message == DUPLICATE_ASSIGNMENT_MESSAGE
    assert FacultyAssignment.query.filter_by(subject_id=subject_id).count() == 1


def test_reassigning_removed_pair_reactivates_row(assignments, make_subject, faculty):
    subject_id = make_subject()
    assignments.assign_faculty(faculty.faculty_id, subject_id, max_students=30)
    assignments.remove_faculty(faculty.faculty_id, subject_id)
    assert active_pairs(subject_id) == 0

    result = assignments.assign_faculty(faculty.faculty_id, subject_id, max_students=50)

    assert result.ok
    rows = FacultyAssignment.query.filter_by(subject_id=subject_id).all()
    assert len(rows) == 1
    assert rows[0].is_active is True
    assert rows[0].max_students == 50


@pytest.mark.parametrize("value", ["0", "201", "many"])
def test_max_students_range(assignments, make_subject, faculty, value):
    result = assignments.assign_faculty(faculty.faculty_id, make_subject(), max_students=value)
    assert result.errors["max_students"] == "Maximum students must be between 1 and 200."


def test_missing_ids(assignments):
    result = assignments.assign_faculty("", None)
    assert result.kind == VALIDATION
    assert set(result.errors) == {"subject_id", "faculty_id"}


def test_inactive_subject_cannot_be_assigned(assignments, make_subject, manager, faculty):
    subject_id = make_subject()
    manager.set_subject_status(subject_id, False)

    result = assignments.assign_faculty(faculty.faculty_id, subject_id)
    assert "subject_id" in result.errors


def test_faculty_without_active_account_cannot_be_assigned(assignments, make_subject, make_faculty):
    pending = make_faculty(status=User.STATUS_PENDING)

    result = assignments.assign_faculty(pending.faculty_id, make_subject())
    assert "faculty_id" in result.errors


def test_remove_blocked_by_timetable(assignments, make_subject, faculty, db):
    subject_id = make_subject()
    assignments.assign_faculty(faculty.faculty_id, subject_id)
    db.session.add(TimetableEntry(
        subject_id=subject_id, faculty_id=faculty.faculty_id, day_of_week="Tuesday",
        start_time=time(11), end_time=time(12),
    ))
    db.session.commit()

    result = assignments.remove_faculty(faculty.faculty_id, subject_id)

    assert result.kind == CONFLICT
    assert result.message == "Cannot remove assignment: faculty is scheduled to teach this subject"
    assert active_pairs(subject_id) == 1


def test_remove_deactivates_assignment(assignments, make_subject, faculty):
    subject_id = make_subject()
    assignments.assign_faculty(faculty.faculty_id, subject_id)

    result = assignments.remove_faculty(faculty.faculty_id, subject_id)

    assert result.ok
    assert result.message == "Faculty assignment removed successfully"
    assert FacultyAssignment.query.filter_by(subject_id=subject_id).one().is_active is False


def test_remove_unknown_assignment(assignments, make_subject, faculty):
    assert assignments.remove_faculty(faculty.faculty_id, make_subject()).kind == NOT_FOUND


def test_assigned_and_available_faculty(assignments, make_subject, make_faculty):
    subject_id = make_subject()
    grace = make_faculty()
    barbara = make_faculty(first_name="Barbara", last_name="Liskov", department="Mathematics")
    assignments.assign_faculty(grace.faculty_id, subject_id)

    assigned = assignments.get_assigned_faculty(subject_id)
    assert [f["full_name"] for f in assigned] == ["Grace Hopper"]

    available = assignments.get_available_faculty(subject_id)
    assert [f["faculty_id"] for f in available] == [barbara.faculty_id]

    everyone = {f["full_name"]: f["current_assignments"] for f in assignments.get_available_faculty()}
    assert everyone == {"Grace Hopper": 1, "Barbara Liskov": 0}

    assert assignments.get_available_faculty(department="Computer Science")[0]["faculty_id"] == grace.faculty_id


def test_recent_assignments(assignments, make_subject, faculty, admin_user):
    subject_id = make_subject()
    assignments.assign_faculty(faculty.faculty_id, subject_id, admin_user.user_id)

    recent = assignments.get_recent_assignments()

    assert len(recent) == 1
    assert recent[0]["subject_code"] == "CS101"
    assert recent[0]["faculty_name"] == "Grace Hopper"
    assert recent[0]["assigned_by_name"] == "Ada Admin"


def test_assignments_for_faculty_skip_inactive_subjects(assignments, make_subject, manager, faculty):
    first = make_subject()
    second = make_subject(subject_code="CS102")
    assignments.assign_faculty(faculty.faculty_id, first)
    assignments.assign_faculty(faculty.faculty_id, second)
    manager.set_subject_status(second, False)

    rows = assignments.get_assignments_for_faculty(faculty.faculty_id)
    assert [a.subject.subject_code for a in rows] == ["CS101"]
