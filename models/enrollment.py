from extensions import db


class Enrollment(db.Model):
    __tablename__ = "enrollments"

    STATUS_ENROLLED = "enrolled"

    enrollment_id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.student_id"), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subjects.subject_id"), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ENROLLED)  # enrolled | dropped | completed
    enrolled_at = db.Column(db.DateTime, server_default=db.func.now())

    def __repr__(self):
        return f"<Enrollment student={self.student_id} subject={self.subject_id} {self.status}>"
