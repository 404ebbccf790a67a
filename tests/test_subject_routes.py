from conftest import CS101, make_user
from extensions import db as _db
from models import FacultyAssignment, Role, Subject


def test_anonymous_user_is_sent_to_login(client):
    response = client.get("/admin/subjects")
    assert response.status_code == 302
    assert "/login" in response.headers["Location"]
    assert "next=" in response.headers["Location"]


def test_wrong_role_is_sent_to_unauthorized(login_as, app):
    faculty_user = make_user("lecturer", Role.FACULTY)
    _db.session.commit()
    client = login_as(faculty_user)

    response = client.get("/admin/subjects")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/unauthorized")

    page = client.get("/unauthorized")
    assert page.status_code == 403


def test_create_subject_then_list(admin_client):
    response = admin_client.post("/admin/subjects/create", data=CS101)

    assert response.status_code == 302
    assert "/admin/subjects" in response.headers["Location"]
    assert Subject.query.count() == 1

    listing = admin_client.get(response.headers["Location"])
    assert listing.status_code == 200
    assert listing.get_data(as_text=True).count(">CS101</a>") == 1
    assert "Subject created successfully" in listing.get_data(as_text=True)


def test_same_post_twice_reports_duplicate(admin_client):
    admin_client.post("/admin/subjects/create", data=CS101)
    response = admin_client.post("/admin/subjects/create", data=CS101)

    assert response.status_code == 200
    assert "Subject code already exists" in response.get_data(as_text=True)
    assert Subject.query.count() == 1


def test_validation_failure_keeps_entered_values(admin_client):
    response = admin_client.post("/admin/subjects/create", data=dict(CS101, credits="9", subject_name="Keep Me"))

    body = response.get_data(as_text=True)
    assert response.status_code == 200
    assert "Credits must be between 1 and 6." in body
    assert 'value="Keep Me"' in body
    assert Subject.query.count() == 0


def test_edit_subject(admin_client, make_subject):
    subject_id = make_subject()

    page = admin_client.get(f"/admin/subjects/{subject_id}/edit")
    assert page.status_code == 200
    assert 'value="Intro to CS"' in page.get_data(as_text=True)

    response = admin_client.post(f"/admin/subjects/{subject_id}/edit", data=dict(CS101, subject_name="Computing"))
    assert response.status_code == 302
    assert f"updated_id={subject_id}" in response.headers["Location"]
    assert _db.session.get(Subject, subject_id).subject_name == "Computing"


def test_unknown_subject_is_404(admin_client):
    assert admin_client.get("/admin/subjects/999").status_code == 404
    assert admin_client.get("/admin/subjects/999/edit").status_code == 404


def test_view_subject(admin_client, make_subject):
    subject_id = make_subject()
    response = admin_client.get(f"/admin/subjects/{subject_id}")
    assert response.status_code == 200
    assert "Intro to CS" in response.get_data(as_text=True)


def test_list_filters_and_search(admin_client, make_subject):
    make_subject()
    make_subject(subject_code="MATH101", subject_name="Calculus", department="Mathematics")

    body = admin_client.get("/admin/subjects?search=Calculus").get_data(as_text=True)
    assert ">MATH101</a>" in body
    assert ">CS101</a>" not in body

    body = admin_client.get("/admin/subjects?department=CS").get_data(as_text=True)
    assert ">CS101</a>" in body
    assert ">MATH101</a>" not in body


def test_bulk_deactivate_keeps_rows(admin_client, make_subject):
    ids = [make_subject(subject_code=code) for code in ("CS101", "CS102", "CS103")]

    response = admin_client.post("/admin/subjects/bulk", data={
        "selected_subjects": [str(i) for i in ids],
        "bulk_action_type": "deactivate",
        "department": "CS",
    })

    assert response.status_code == 302
    assert "department=CS" in response.headers["Location"]
    assert Subject.query.count() == 3
    assert Subject.query.filter_by(is_active=True).count() == 0


def test_single_status_toggle(admin_client, make_subject):
    subject_id = make_subject()

    response = admin_client.post(f"/admin/subjects/{subject_id}/status", data={"action": "deactivate"})

    assert response.status_code == 302
    assert _db.session.get(Subject, subject_id).is_active is False


def test_permanent_delete_blocked_then_soft_delete(admin_client, make_subject, faculty):
    subject_id = make_subject()
    _db.session.add(FacultyAssignment(faculty_id=faculty.faculty_id, subject_id=subject_id))
    _db.session.commit()

    blocked = admin_client.post(f"/admin/subjects/{subject_id}/delete",
                                data={"delete_type": "permanent", "confirm_delete": "1"})
    assert blocked.status_code == 302
    assert blocked.headers["Location"].endswith(f"/admin/subjects/{subject_id}/delete")
    assert _db.session.get(Subject, subject_id) is not None

    soft = admin_client.post(f"/admin/subjects/{subject_id}/delete",
                             data={"delete_type": "soft", "confirm_delete": "1"})
    assert soft.status_code == 302
    assert "deleted=1" in soft.headers["Location"]
    assert _db.session.get(Subject, subject_id).is_active is False
    assert FacultyAssignment.query.filter_by(subject_id=subject_id).count() == 1


def test_delete_requires_confirmation(admin_client, make_subject):
    subject_id = make_subject()
    admin_client.post(f"/admin/subjects/{subject_id}/delete", data={"delete_type": "soft"})
    assert _db.session.get(Subject, subject_id).is_active is True


def test_assign_and_remove_faculty(admin_client, make_subject, faculty):
    subject_id = make_subject()

    page = admin_client.get(f"/admin/subjects/assign-faculty?subject_id={subject_id}")
    assert page.status_code == 200
    assert "Grace Hopper" in page.get_data(as_text=True)

    response = admin_client.post("/admin/subjects/assign-faculty", data={
        "subject_id": subject_id, "faculty_id": faculty.faculty_id, "max_students": "40",
    })
    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"/admin/subjects/{subject_id}")

    duplicate = admin_client.post("/admin/subjects/assign-faculty", data={
        "subject_id": subject_id, "faculty_id": faculty.faculty_id, "max_students": "40",
    })
    assert duplicate.status_code == 200
    assert "already assigned to this subject" in duplicate.get_data(as_text=True)

    removed = admin_client.post(f"/admin/subjects/{subject_id}/faculty/{faculty.faculty_id}/remove")
    assert removed.status_code == 302
    assert FacultyAssignment.query.filter_by(subject_id=subject_id, is_active=True).count() == 0


def test_export_csv(admin_client, make_subject):
    make_subject()

    response = admin_client.get("/admin/subjects/export?format=csv")

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    body = response.get_data(as_text=True)
    assert body.splitlines()[0].startswith("Code,Name,Department")
    assert "CS101,Intro to CS,CS" in body


def test_export_rejects_unknown_format(admin_client, make_subject):
    make_subject()
    response = admin_client.get("/admin/subjects/export?format=docx")
    assert response.status_code == 302


def test_dashboard_renders(admin_client, make_subject):
    make_subject()
    response = admin_client.get("/admin/")
    assert response.status_code == 200
    assert "Admin Dashboard" in response.get_data(as_text=True)
