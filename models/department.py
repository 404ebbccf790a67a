from extensions import db


class Department(db.Model):
    __tablename__ = "departments"

    department_id = db.Column(db.Integer, primary_key=True)
    department_code = db.Column(db.String(10), unique=True, nullable=False)
    department_name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    subjects = db.relationship("Subject", backref="department_ref", lazy=True)

    def __repr__(self):
        return f"<Department {self.department_code}>"
