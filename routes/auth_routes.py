import logging
from urllib.parse import urlsplit

from flask import Blueprint, flash, redirect, render_template, request, session, url_for
from flask_login import current_user, login_required, login_user, logout_user

from models import Role
from services import auth_service
from services.subject_service import SubjectManager
from utils.decorators import is_logged_in

logger = logging.getLogger(__name__)

# Define the blueprint
auth_bp = Blueprint("auth", __name__)

DASHBOARDS = {
    Role.ADMIN: "admin.dashboard",
    Role.FACULTY: "faculty.dashboard",
    Role.STUDENT: "student.dashboard",
}


def dashboard_url(user):
    endpoint = DASHBOARDS.get(user.role_name)
    return url_for(endpoint) if endpoint else url_for("auth.unauthorized")


def _safe_next(target):
    # Only same-site relative paths are followed after login
    if not target:
        return None
    parts = urlsplit(target)
    if parts.scheme or parts.netloc or not target.startswith("/"):
        return None
    return target


@auth_bp.route("/")
def index():
    if is_logged_in():
        return redirect(dashboard_url(current_user))
    return redirect(url_for("auth.login"))


# =========================================================
# LOGIN / LOGOUT
# =========================================================
@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(dashboard_url(current_user))

    if request.method == "POST":
        email = request.form.get("email", "")
        password = request.form.get("password", "")
        remember = bool(request.form.get("remember_me"))

        result = auth_service.authenticate(email, password)
        if not result.ok:
            return render_template("auth/login.html", error=result.message, email=email)

        user = result.data["user"]
        login_user(user, remember=remember)
        session.permanent = True

        flash(f"Welcome back, {user.display_name}!", "success")
        return redirect(_safe_next(request.args.get("next")) or dashboard_url(user))

    return render_template("auth/login.html")


@auth_bp.route("/logout")
def logout():
    if current_user.is_authenticated:
        logger.info("User logged out: %s", current_user.email)
    logout_user()      # Tell Flask-Login to wipe the user session
    session.clear()
    flash("You have been logged out.", "info")
    return redirect(url_for("auth.login"))


# =========================================================
# REGISTRATION / EMAIL VERIFICATION
# =========================================================
@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    if current_user.is_authenticated:
        return redirect(dashboard_url(current_user))

    departments = SubjectManager().get_department_choices()

    if request.method == "POST":
        result = auth_service.register_user(request.form)
        if result.ok:
            flash(result.message, "success")
            return redirect(url_for("auth.login"))

        return render_template(
            "auth/register.html",
            form=request.form,
            errors=result.errors,
            error=result.message,
            departments=departments,
        )

    return render_template("auth/register.html", form={}, errors={}, departments=departments)


@auth_bp.route("/verify-email/<token>")
def verify_email(token):
    result = auth_service.verify_email(token)
    flash(result.message, "success" if result.ok else "error")
    return redirect(url_for("auth.login"))


# =========================================================
# PASSWORD RESET / CHANGE
# =========================================================
@auth_bp.route("/forgot-password", methods=["GET", "POST"])
def forgot_password():
    if request.method == "POST":
        result = auth_service.request_password_reset(request.form.get("email"))
        # Same reply whether or not the account exists
        flash(result.message, "info")
        return redirect(url_for("auth.login"))

    return render_template("auth/forgot_password.html")


@auth_bp.route("/reset-password/<token>", methods=["GET", "POST"])
def reset_password(token):
    if auth_service.load_reset_user(token) is None:
        flash(auth_service.INVALID_RESET_TOKEN, "error")
        return redirect(url_for("auth.forgot_password"))

    if request.method == "POST":
        result = auth_service.reset_password(
            token,
            request.form.get("password", ""),
            request.form.get("confirm_password", ""),
        )
        if result.ok:
            flash(result.message, "success")
            return redirect(url_for("auth.login"))
        return render_template("auth/reset_password.html", token=token, errors=result.errors, error=result.message)

    return render_template("auth/reset_password.html", token=token, errors={})


@auth_bp.route("/change-password", methods=["GET", "POST"])
@login_required
def change_password():
    if request.method == "POST":
        result = auth_service.change_password(
            current_user.user_id,
            request.form.get("current_password", ""),
            request.form.get("new_password", ""),
            request.form.get("confirm_password", ""),
        )
        if result.ok:
            flash(result.message, "success")
            return redirect(dashboard_url(current_user))
        return render_template("auth/change_password.html", errors=result.errors, error=result.message)

    return render_template("auth/change_password.html", errors={})


@auth_bp.route("/unauthorized")
def unauthorized():
    return render_template("unauthorized.html"), 403
