import pytest

from conftest import CS101
from extensions import db as _db
from models import Department, Enrollment, FacultyAssignment, Subject, TimetableEntry
from services.results import CONFLICT, NOT_FOUND, VALIDATION
from services.subject_service import DUPLICATE_CODE_MESSAGE, validate_subject_data


def get_subject(subject_id):
    return _db.session.get(Subject, subject_id)


def subject_count():
    return Subject.query.count()


class TestValidation:
    def test_valid_data_is_typed(self, app):
        clean, errors = validate_subject_data(dict(CS101, type="lab", description="  Basics  "))
        assert errors == {}
        assert clean["credits"] == 3
        assert clean["semester"] == 1
        assert clean["type"] == "lab"
        assert clean["description"] == "Basics"
        assert clean["prerequisites"] is None

    def test_type_defaults_to_theory(self, app):
        clean, errors = validate_subject_data(CS101)
        assert not errors
        assert clean["type"] == "theory"

    def test_missing_fields_are_listed(self, app):
        _, errors = validate_subject_data({"subject_code": "CS101"})
        assert errors["__all__"].startswith("Please fill in all required fields:")
        assert "Subject name" in errors["__all__"]
        assert "Year level" in errors["__all__"]
        assert "credits" in errors

    @pytest.mark.parametrize("code", ["cs101", "C101", "CS12", "CSCSCS101", "CS12345", "CS-101"])
    def test_bad_code_format(self, app, code):
        _, errors = validate_subject_data(dict(CS101, subject_code=code))
        assert "subject_code" in errors

    @pytest.mark.parametrize("code", ["CS101", "MATH1001", "ABCDE999"])
    def test_good_code_format(self, app, code):
        _, errors = validate_subject_data(dict(CS101, subject_code=code))
        assert errors == {}

    def test_name_length_limit(self, app):
        _, errors = validate_subject_data(dict(CS101, subject_name="x" * 101))
        assert "subject_name" in errors

    def test_unknown_type(self, app):
        _, errors = validate_subject_data(dict(CS101, type="seminar"))
        assert "type" in errors

    def test_non_numeric_credits(self, app):
        _, errors = validate_subject_data(dict(CS101, credits="three"))
        assert errors["credits"] == "Credits must be a whole number."

    @pytest.mark.parametrize("field,value", [
        ("semester", "0"), ("semester", "13"), ("year_level", "0"), ("year_level", "7"),
    ])
    def test_semester_and_year_ranges(self, app, field, value):
        _, errors = validate_subject_data(dict(CS101, **{field: value}))
        assert field in errors


class TestCreate:
    def test_create_inserts_row(self, manager, admin_user):
        result = manager.create_subject(CS101, admin_user.user_id)

        assert result.ok
        assert result.message == "Subject created successfully"
        subject = get_subject(result.id)
        assert subject.subject_code == "CS101"
        assert subject.is_active is True
        assert subject.created_by == admin_user.user_id

    def test_department_code_resolves_department_id(self, manager, admin_user):
        result = manager.create_subject(CS101, admin_user.user_id)
        cs = Department.query.filter_by(department_code="CS").first()
        assert get_subject(result.id).department_id == cs.department_id

    def test_unknown_department_leaves_id_empty(self, manager, admin_user):
        result = manager.create_subject(dict(CS101, department="Philosophy"), admin_user.user_id)
        assert get_subject(result.id).department_id is None

    def test_invalid_code_writes_nothing(self, manager, admin_user):
        result = manager.create_subject(dict(CS101, subject_code="cs101"), admin_user.user_id)

        assert result.kind == VALIDATION
        assert "subject_code" in result.errors
        assert subject_count() == 0

    @pytest.mark.parametrize("field,value", [
        ("credits", "0"), ("credits", "7"), ("duration_hours", "0"), ("duration_hours", "9"),
    ])
    def test_out_of_range_numbers_rejected(self, manager, admin_user, field, value):
        result = manager.create_subject(dict(CS101, **{field: value}), admin_user.user_id)

        assert not result.ok
        assert field in result.errors
        assert subject_count() == 0

    def test_duplicate_code_rejected(self, manager, make_subject, admin_user):
        make_subject()
        result = manager.create_subject(CS101, admin_user.user_id)

        assert result.kind == VALIDATION
        assert result.errors["subject_code"] == DUPLICATE_CODE_MESSAGE
        assert result.message == DUPLICATE_CODE_MESSAGE
        assert subject_count() == 1

    def test_code_of_inactive_subject_stays_taken(self, manager, make_subject, admin_user):
        subject_id = make_subject()
        manager.set_subject_status(subject_id, False)

        result = manager.create_subject(CS101, admin_user.user_id)
        assert result.errors["subject_code"] == DUPLICATE_CODE_MESSAGE

    def test_unique_constraint_is_the_final_guard(self, manager, make_subject, admin_user, monkeypatch):
        make_subject()
        monkeypatch.setattr(manager, "subject_code_exists", lambda *args, **kwargs: False)

        result = manager.create_subject(CS101, admin_user.user_id)

        assert result.errors == {"subject_code": DUPLICATE_CODE_MESSAGE}
        assert subject_count() == 1


class TestUpdate:
    def test_update_changes_fields(self, manager, make_subject, admin_user):
        subject_id = make_subject()
        result = manager.update_subject(subject_id, dict(CS101, subject_name="Computing I", credits="4"),
                                        admin_user.user_id)

        assert result.ok
        assert result.message == "Subject updated successfully"
        subject = get_subject(subject_id)
        assert subject.subject_name == "Computing I"
        assert subject.credits == 4

    def test_keeping_own_code_is_allowed(self, manager, make_subject):
        subject_id = make_subject()
        assert manager.update_subject(subject_id, CS101).ok

    def test_taking_another_subjects_code_is_rejected(self, manager, make_subject):
        make_subject()
        other_id = make_subject(subject_code="CS102")

        result = manager.update_subject(other_id, CS101)
        assert result.errors["subject_code"] == DUPLICATE_CODE_MESSAGE
        assert get_subject(other_id).subject_code == "CS102"

    @pytest.mark.parametrize("field,value", [("credits", "7"), ("duration_hours", "0")])
    def test_out_of_range_numbers_rejected(self, manager, make_subject, field, value):
        subject_id = make_subject()
        result = manager.update_subject(subject_id, dict(CS101, **{field: value}))

        assert field in result.errors
        assert getattr(get_subject(subject_id), field) == 3

    def test_missing_status_keeps_inactive_subject_inactive(self, manager, make_subject):
        subject_id = make_subject()
        manager.set_subject_status(subject_id, False)

        result = manager.update_subject(subject_id, dict(CS101, subject_name="Computing"))

        assert result.ok
        subject = get_subject(subject_id)
        assert subject.subject_name == "Computing"
        assert subject.is_active is False

    def test_explicit_status_is_applied(self, manager, make_subject):
        subject_id = make_subject()
        assert manager.update_subject(subject_id, dict(CS101, is_active="0")).ok
        assert get_subject(subject_id).is_active is False

    def test_unknown_subject(self, manager):
        assert manager.update_subject(999, CS101).kind == NOT_FOUND


class TestDelete:
    def test_permanent_delete_blocked_by_active_assignment(self, manager, make_subject, faculty, db):
        subject_id = make_subject()
        db.session.add(FacultyAssignment(faculty_id=faculty.faculty_id, subject_id=subject_id))
        db.session.commit()

        result = manager.delete_subject(subject_id, permanent=True)

        assert result.kind == CONFLICT
        assert "1 faculty assignment(s)" in result.message
        assert get_subject(subject_id) is not None

    def test_deactivation_preserves_dependents(self, manager, make_subject, faculty, db):
        subject_id = make_subject()
        db.session.add(FacultyAssignment(faculty_id=faculty.faculty_id, subject_id=subject_id))
        db.session.commit()

        result = manager.delete_subject(subject_id, permanent=False)

        assert result.ok
        assert result.message == "Subject 'CS101' has been deactivated successfully."
        assert get_subject(subject_id).is_active is False
        assignment = FacultyAssignment.query.filter_by(subject_id=subject_id).one()
        assert assignment.is_active is True

    def test_permanent_delete_blocked_by_enrollment_and_timetable(self, manager, make_subject, faculty, student, db):
        from datetime import time

        subject_id = make_subject()
        db.session.add(Enrollment(student_id=student.student_id, subject_id=subject_id))
        db.session.add(TimetableEntry(
            subject_id=subject_id, faculty_id=faculty.faculty_id, day_of_week="Monday",
            start_time=time(9), end_time=time(10),
        ))
        db.session.commit()

        result = manager.delete_subject(subject_id, permanent=True)
        assert result.kind == CONFLICT
        assert "1 enrollment(s)" in result.message
        assert "1 timetable entry" in result.message

    def test_permanent_delete_removes_subject_and_history(self, manager, make_subject, faculty, db):
        subject_id = make_subject()
        db.session.add(FacultyAssignment(faculty_id=faculty.faculty_id, subject_id=subject_id, is_active=False))
        db.session.commit()

        result = manager.delete_subject(subject_id, permanent=True)

        assert result.ok
        assert "permanently deleted" in result.message
        assert get_subject(subject_id) is None
        assert FacultyAssignment.query.filter_by(subject_id=subject_id).count() == 0

    def test_related_data_counts(self, manager, make_subject, make_faculty, db):
        subject_id = make_subject()
        active, former = make_faculty(), make_faculty(first_name="Edsger", last_name="Dijkstra")
        db.session.add(FacultyAssignment(faculty_id=active.faculty_id, subject_id=subject_id))
        db.session.add(FacultyAssignment(faculty_id=former.faculty_id, subject_id=subject_id, is_active=False))
        db.session.commit()

        related = manager.get_related_data(subject_id)

        assert related["total_assignments"] == 2
        assert related["active_assignments"] == 1
        assert related["active_enrollments"] == 0
        assert [f["first_name"] for f in related["assigned_faculty"]] == ["Grace"]

    def test_unknown_subject(self, manager):
        assert manager.delete_subject(404).kind == NOT_FOUND


class TestBulkAction:
    def test_bulk_deactivate_three(self, manager, make_subject):
        ids = [make_subject(subject_code=code) for code in ("CS101", "CS102", "CS103")]

        result = manager.bulk_action([str(i) for i in ids], "deactivate")

        assert result.ok
        assert result.data["success_count"] == 3
        assert subject_count() == 3
        assert all(not s.is_active for s in Subject.query.all())

    def test_bulk_delete_is_soft(self, manager, make_subject):
        ids = [make_subject(subject_code=code) for code in ("CS101", "CS102")]

        assert manager.bulk_action(ids, "delete").ok
        assert subject_count() == 2
        assert Subject.query.filter_by(is_active=True).count() == 0

    def test_bulk_activate(self, manager, make_subject):
        subject_id = make_subject(is_active="0")
        assert get_subject(subject_id).is_active is False

        assert manager.bulk_action([subject_id], "activate").ok
        assert get_subject(subject_id).is_active is True

    def test_failure_rolls_back_whole_batch(self, manager, make_subject):
        ids = [make_subject(subject_code=code) for code in ("CS101", "CS102")]

        result = manager.bulk_action(ids + [999], "deactivate")

        assert result.kind == CONFLICT
        assert "Subject ID 999: Subject not found" in result.message
        assert Subject.query.filter_by(is_active=True).count() == 2

    def test_repeated_ids_count_once(self, manager, make_subject):
        subject_id = make_subject()

        result = manager.bulk_action([str(subject_id), str(subject_id)], "deactivate")

        assert result.ok
        assert result.data["success_count"] == 1
        assert result.message == "Bulk operation completed. 1 subject(s) deactivated."

    def test_empty_selection(self, manager):
        result = manager.bulk_action([], "deactivate")
        assert result.message == "No subjects selected"

    def test_unknown_action(self, manager, make_subject):
        result = manager.bulk_action([make_subject()], "archive")
        assert result.message == "Invalid action"


class TestReads:
    @pytest.fixture
    def catalogue(self, make_subject, manager):
        ids = {
            "CS101": make_subject(),
            "CS201": make_subject(subject_code="CS201", subject_name="Data Structures", type="lab",
                                  year_level="2", semester="3"),
            "MATH101": make_subject(subject_code="MATH101", subject_name="Calculus", department="Mathematics",
                                    description="Limits and derivatives"),
        }
        manager.set_subject_status(ids["CS201"], False)
        return ids

    def test_list_is_sorted_by_code(self, manager, catalogue):
        codes = [row["subject_code"] for row in manager.get_all_subjects()]
        assert codes == ["CS101", "CS201", "MATH101"]

    def test_filters(self, manager, catalogue):
        assert [r["subject_code"] for r in manager.get_all_subjects({"type": "lab"})] == ["CS201"]
        assert [r["subject_code"] for r in manager.get_all_subjects({"year_level": "2"})] == ["CS201"]
        assert [r["subject_code"] for r in manager.get_all_subjects({"department": "Mathematics"})] == ["MATH101"]
        assert [r["subject_code"] for r in manager.get_all_subjects({"status": "inactive"})] == ["CS201"]
        assert len(manager.get_all_subjects({"status": "active"})) == 2

    def test_search_covers_description(self, manager, catalogue):
        assert [r["subject_code"] for r in manager.get_all_subjects(search="derivatives")] == ["MATH101"]
        assert [r["subject_code"] for r in manager.get_all_subjects(search="Data")] == ["CS201"]

    def test_search_wildcards_match_literally(self, manager, catalogue, make_subject):
        make_subject(subject_code="CS301", subject_name="Load 100% Test")

        assert [r["subject_code"] for r in manager.get_all_subjects(search="100%")] == ["CS301"]
        assert [r["subject_code"] for r in manager.get_all_subjects(search="%")] == ["CS301"]
        assert manager.get_all_subjects(search="C_101") == []

    def test_rows_carry_dependent_counts(self, manager, catalogue, faculty, db):
        db.session.add(FacultyAssignment(faculty_id=faculty.faculty_id, subject_id=catalogue["CS101"]))
        db.session.commit()

        row = next(r for r in manager.get_all_subjects() if r["subject_code"] == "CS101")
        assert row["assigned_faculty_count"] == 1
        assert row["enrolled_students_count"] == 0
        assert row["scheduled_classes_count"] == 0
        assert row["faculty_names"] == "Grace Hopper"

    def test_get_subject_by_id(self, manager, catalogue):
        row = manager.get_subject_by_id(catalogue["MATH101"])
        assert row["subject_name"] == "Calculus"
        assert row["department_name"] == "Mathematics"
        assert manager.get_subject_by_id(999) is None

    def test_statistics_count_active_subjects(self, manager, catalogue):
        stats = manager.get_subjects_statistics()

        assert stats["total_subjects"] == 2
        assert stats["theory_subjects"] == 2
        assert stats["lab_subjects"] == 0
        assert stats["year_1_subjects"] == 2
        assert stats["avg_credits"] == 3.0
        departments = {row["department"]: row["subject_count"] for row in stats["department_breakdown"]}
        assert departments == {"CS": 1, "Mathematics": 1}

    def test_statistics_on_empty_catalogue(self, manager):
        stats = manager.get_subjects_statistics()
        assert stats["total_subjects"] == 0
        assert stats["avg_credits"] == 0
        assert stats["enrollment_stats"]["avg_students_per_subject"] == 0

    def test_departments_come_from_active_subjects(self, manager, catalogue):
        assert manager.get_departments() == ["CS", "Mathematics"]

    def test_department_choices_use_departments_table(self, manager):
        names = [d["department_name"] for d in manager.get_department_choices()]
        assert "Computer Science" in names

    def test_choice_lists(self, manager):
        assert [t["type"] for t in manager.get_subject_types()] == ["theory", "practical", "lab"]
        assert manager.get_year_levels()[0] == {"level": 1, "label": "Year 1"}
