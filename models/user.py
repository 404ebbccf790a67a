from extensions import db
from flask_login import UserMixin


class User(UserMixin, db.Model):
    __tablename__ = "users"

    STATUS_PENDING = "pending"
    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"
    STATUS_REJECTED = "rejected"

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    role_id = db.Column(
        db.Integer,
        db.ForeignKey("roles.role_id"),
        nullable=False
    )

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    email_verified = db.Column(db.Boolean, default=False, nullable=False)

    login_attempts = db.Column(db.Integer, default=0, nullable=False)
    last_attempt_time = db.Column(db.DateTime)
    last_login = db.Column(db.DateTime)

    approved_by = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=True)
    approved_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    # Flask-Login looks for "id", but our column is "user_id".
    def get_id(self):
        return str(self.user_id)

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    @property
    def role_name(self):
        return self.role.role_name if self.role else None

    @property
    def profile(self):
        return {
            "admin": self.admin_profile,
            "faculty": self.faculty_profile,
            "student": self.student_profile,
        }.get(self.role_name)

    @property
    def display_name(self):
        profile = self.profile
        return profile.full_name if profile else self.username

    def __repr__(self):
        return f"<User {self.username}>"
