from flask import Blueprint, render_template
from flask_login import current_user

from models import Role
from services.assignment_service import AssignmentManager
from utils.decorators import guard_blueprint

faculty_bp = Blueprint("faculty", __name__, url_prefix="/faculty")
guard_blueprint(faculty_bp, Role.FACULTY)


@faculty_bp.route("/dashboard")
def dashboard():
    profile = current_user.faculty_profile
    assignments = AssignmentManager().get_assignments_for_faculty(profile.faculty_id) if profile else []

    return render_template(
        "faculty/dashboard.html",
        profile=profile,
        assignments=assignments,
        total_credits=sum(a.subject.credits for a in assignments),
    )
