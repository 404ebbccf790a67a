from extensions import db


class FacultyAssignment(db.Model):
    __tablename__ = "faculty_subjects"
    # One row per pair; re-assigning reactivates it, so at most one is active
    __table_args__ = (
        db.UniqueConstraint("faculty_id", "subject_id", name="uq_faculty_subject"),
    )

    assignment_id = db.Column(db.Integer, primary_key=True)

    faculty_id = db.Column(
        db.Integer,
        db.ForeignKey("faculty.faculty_id"),
        nullable=False
    )

    subject_id = db.Column(
        db.Integer,
        db.ForeignKey("subjects.subject_id"),
        nullable=False
    )

    max_students = db.Column(db.Integer, nullable=False, default=60)
    assigned_by = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=True
    )
    notes = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    assigned_date = db.Column(db.DateTime, server_default=db.func.now())

    def __repr__(self):
        return f"<FacultyAssignment faculty={self.faculty_id} subject={self.subject_id}>"
