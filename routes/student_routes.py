from flask import Blueprint, render_template
from flask_login import current_user

from models import Enrollment, Role, Subject
from utils.decorators import role_required

student_bp = Blueprint("student", __name__, url_prefix="/student")


@student_bp.route("/dashboard")
@role_required(Role.STUDENT)
def dashboard():
    profile = current_user.student_profile
    enrollments = []
    if profile:
        enrollments = (
            Enrollment.query
            .join(Subject)
            .filter(
                Enrollment.student_id == profile.student_id,
                Enrollment.status == Enrollment.STATUS_ENROLLED,
            )
            .order_by(Subject.semester.asc(), Subject.subject_code.asc())
            .all()
        )

    return render_template(
        "student/dashboard.html",
        profile=profile,
        enrollments=enrollments,
        total_credits=sum(e.subject.credits for e in enrollments),
    )
