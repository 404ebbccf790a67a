from extensions import db


class TimetableEntry(db.Model):
    __tablename__ = "timetables"

    timetable_id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(db.Integer, db.ForeignKey("subjects.subject_id"), nullable=False)
    faculty_id = db.Column(db.Integer, db.ForeignKey("faculty.faculty_id"), nullable=False)
    day_of_week = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    room = db.Column(db.String(50))
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<TimetableEntry subject={self.subject_id} {self.day_of_week} {self.start_time}>"
