import logging

from flask import Blueprint, abort, flash, redirect, render_template, request, send_file, url_for

from models import Role, User
from services import auth_service
from services.assignment_service import AssignmentManager
from services.audit_service import recent_activity
from services.export_service import EXPORT_FORMATS, export_subjects
from services.subject_service import SubjectManager
from utils.decorators import get_current_user_id, guard_blueprint
from utils.helpers import list_filters, redirect_with_flash, safe_int

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")
guard_blueprint(admin_bp, Role.ADMIN)

SUBJECT_FORM_FIELDS = (
    "subject_code", "subject_name", "credits", "duration_hours", "type",
    "department", "semester", "year_level", "prerequisites", "description",
    "syllabus", "is_active",
)


def _subject_form(subject):
    return {field: getattr(subject, field) for field in SUBJECT_FORM_FIELDS}


def _form_choices(manager):
    return {
        "departments": manager.get_department_choices(),
        "subject_types": manager.get_subject_types(),
        "year_levels": manager.get_year_levels(),
    }


# =========================================================
# DASHBOARD
# =========================================================
@admin_bp.route("/")
def dashboard():
    subjects = SubjectManager()
    return render_template(
        "admin/dashboard.html",
        stats=subjects.get_subjects_statistics(),
        pending_count=User.query.filter_by(status=User.STATUS_PENDING).count(),
        user_count=User.query.count(),
        recent_assignments=AssignmentManager().get_recent_assignments(5),
        activity=recent_activity(10),
    )


# =========================================================
# SUBJECT LIST / BULK / STATUS
# =========================================================
@admin_bp.route("/subjects")
def subjects():
    manager = SubjectManager()
    filters = list_filters()
    search = filters.pop("search", "")

    return render_template(
        "admin/subjects/index.html",
        subjects=manager.get_all_subjects(filters, search),
        stats=manager.get_subjects_statistics(),
        departments=manager.get_departments(),
        subject_types=manager.get_subject_types(),
        year_levels=manager.get_year_levels(),
        filters=filters,
        search=search,
        updated_id=safe_int(request.args.get("updated_id")),
        created_id=safe_int(request.args.get("created")),
        deleted=request.args.get("deleted"),
    )


@admin_bp.route("/subjects/bulk", methods=["POST"])
def bulk_subjects():
    result = SubjectManager().bulk_action(
        request.form.getlist("selected_subjects"),
        request.form.get("bulk_action_type", ""),
        get_current_user_id(),
    )
    return redirect_with_flash(
        "admin.subjects", "success" if result.ok else "error", result.message, **list_filters(request.form)
    )


@admin_bp.route("/subjects/<int:subject_id>/status", methods=["POST"])
def subject_status(subject_id):
    action = request.form.get("action")
    if action not in ("activate", "deactivate"):
        return redirect_with_flash("admin.subjects", "error", "Invalid action", **list_filters(request.form))

    result = SubjectManager().set_subject_status(subject_id, action == "activate", get_current_user_id())
    params = list_filters(request.form)
    if result.ok:
        params["updated_id"] = subject_id
    return redirect_with_flash("admin.subjects", "success" if result.ok else "error", result.message, **params)


# =========================================================
# CREATE / EDIT / VIEW
# =========================================================
@admin_bp.route("/subjects/create", methods=["GET", "POST"])
def create_subject():
    manager = SubjectManager()

    if request.method == "POST":
        result = manager.create_subject(request.form, get_current_user_id())
        if result.ok:
            flash(result.message, "success")
            return redirect(url_for("admin.subjects", created=result.id))

        return render_template(
            "admin/subjects/create.html",
            form=request.form,
            errors=result.errors,
            error=result.message,
            **_form_choices(manager)
        )

    return render_template(
        "admin/subjects/create.html",
        form={"type": "theory", "is_active": True},
        errors={},
        **_form_choices(manager)
    )


@admin_bp.route("/subjects/<int:subject_id>/edit", methods=["GET", "POST"])
def edit_subject(subject_id):
    manager = SubjectManager()
    subject = manager.get_subject(subject_id)
    if subject is None:
        abort(404)

    if request.method == "POST":
        result = manager.update_subject(subject_id, request.form, get_current_user_id())
        if result.ok:
            flash(result.message, "success")
            return redirect(url_for("admin.subjects", updated_id=subject_id))

        return render_template(
            "admin/subjects/edit.html",
            subject=subject,
            form=request.form,
            errors=result.errors,
            error=result.message,
            **_form_choices(manager)
        )

    return render_template(
        "admin/subjects/edit.html",
        subject=subject,
        form=_subject_form(subject),
        errors={},
        **_form_choices(manager)
    )


@admin_bp.route("/subjects/<int:subject_id>")
def view_subject(subject_id):
    manager = SubjectManager()
    subject = manager.get_subject_by_id(subject_id)
    if subject is None:
        abort(404)

    return render_template(
        "admin/subjects/view.html",
        subject=subject,
        related=manager.get_related_data(subject_id),
        assigned_faculty=AssignmentManager().get_assigned_faculty(subject_id),
    )


# =========================================================
# DELETE
# =========================================================
@admin_bp.route("/subjects/<int:subject_id>/delete", methods=["GET", "POST"])
def delete_subject(subject_id):
    manager = SubjectManager()
    subject = manager.get_subject_by_id(subject_id)
    if subject is None:
        abort(404)

    if request.method == "POST":
        if not request.form.get("confirm_delete"):
            flash("Please confirm the deletion.", "error")
            return redirect(url_for("admin.delete_subject", subject_id=subject_id))

        permanent = request.form.get("delete_type") == "permanent"
        result = manager.delete_subject(subject_id, get_current_user_id(), permanent=permanent)
        if result.ok:
            flash(result.message, "success")
            return redirect(url_for("admin.subjects", deleted=1))

        flash(result.message, "error")
        return redirect(url_for("admin.delete_subject", subject_id=subject_id))

    return render_template(
        "admin/subjects/delete.html",
        subject=subject,
        related=manager.get_related_data(subject_id),
    )


# =========================================================
# FACULTY ASSIGNMENT
# =========================================================
@admin_bp.route("/subjects/assign-faculty", methods=["GET", "POST"])
def assign_faculty():
    subjects = SubjectManager()
    assignments = AssignmentManager()
    form = request.form if request.method == "POST" else {
        "subject_id": request.args.get("subject_id", ""),
        "max_students": "",
    }
    error = None
    errors = {}

    if request.method == "POST":
        result = assignments.assign_faculty(
            request.form.get("faculty_id"),
            request.form.get("subject_id"),
            assigned_by=get_current_user_id(),
            max_students=request.form.get("max_students"),
            notes=request.form.get("notes"),
        )
        if result.ok:
            flash(result.message, "success")
            return redirect(url_for("admin.view_subject", subject_id=int(request.form["subject_id"])))
        error = result.message
        errors = result.errors

    subject_id = safe_int(form.get("subject_id"))
    return render_template(
        "admin/subjects/assign_faculty.html",
        subjects=subjects.get_all_subjects({"status": "active"}),
        faculty=assignments.get_available_faculty(subject_id),
        departments=subjects.get_department_choices(),
        recent_assignments=assignments.get_recent_assignments(),
        form=form,
        errors=errors,
        error=error,
    )


@admin_bp.route("/subjects/<int:subject_id>/faculty/<int:faculty_id>/remove", methods=["POST"])
def remove_faculty(subject_id, faculty_id):
    result = AssignmentManager().remove_faculty(faculty_id, subject_id, get_current_user_id())
    return redirect_with_flash(
        "admin.view_subject", "success" if result.ok else "error", result.message, subject_id=subject_id
    )


# =========================================================
# EXPORT
# =========================================================
@admin_bp.route("/subjects/export")
def export_subject_list():
    file_format = request.args.get("format", "csv")
    if file_format not in EXPORT_FORMATS:
        return redirect_with_flash("admin.subjects", "error", "Invalid export format.")

    filters = list_filters()
    search = filters.pop("search", "")
    rows = SubjectManager().get_all_subjects(filters, search)
    if not rows:
        return redirect_with_flash("admin.subjects", "warning", "No subjects found to export.", **list_filters())

    output, mimetype, download_name = export_subjects(rows, file_format)
    return send_file(output, mimetype=mimetype, as_attachment=True, download_name=download_name)


# =========================================================
# USER APPROVAL
# =========================================================
@admin_bp.route("/users/pending")
def pending_users():
    return render_template("admin/users/pending.html", users=auth_service.get_pending_users())


@admin_bp.route("/users/<int:user_id>/approve", methods=["POST"])
def approve_user(user_id):
    result = auth_service.approve_user(user_id, get_current_user_id())
    return redirect_with_flash("admin.pending_users", "success" if result.ok else "error", result.message)


@admin_bp.route("/users/<int:user_id>/reject", methods=["POST"])
def reject_user(user_id):
    result = auth_service.reject_user(user_id, get_current_user_id())
    return redirect_with_flash("admin.pending_users", "success" if result.ok else "error", result.message)
