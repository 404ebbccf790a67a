# models/subjects.py
from extensions import db


class Subject(db.Model):
    __tablename__ = 'subjects'

    TYPES = ("theory", "practical", "lab")

    subject_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    # Unique across soft-deleted rows too; the constraint is the duplicate authority
    subject_code = db.Column(db.String(20), nullable=False, unique=True)
    subject_name = db.Column(db.String(100), nullable=False)
    credits = db.Column(db.Integer, nullable=False)
    duration_hours = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(20), nullable=False, default="theory")
    department = db.Column(db.String(100), nullable=False, index=True)
    department_id = db.Column(db.Integer, db.ForeignKey('departments.department_id'), nullable=True)
    semester = db.Column(db.Integer, nullable=False)
    year_level = db.Column(db.Integer, nullable=False)
    prerequisites = db.Column(db.Text)
    description = db.Column(db.Text)
    syllabus = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    assignments = db.relationship('FacultyAssignment', backref='subject', lazy=True)
    enrollments = db.relationship('Enrollment', backref='subject', lazy=True)
    timetable_entries = db.relationship('TimetableEntry', backref='subject', lazy=True)

    def __repr__(self):
        return f"<Subject {self.subject_code}>"
