"""
Authentication and account lifecycle.

Login with lockout, self-registration, email verification, password reset
and admin approval. Verification and reset links are signed itsdangerous
tokens; they are logged instead of mailed.
"""
import logging
import re
from datetime import datetime, timedelta

from flask import current_app, url_for
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import Faculty, Role, Student, User
from services.audit_service import record_audit
from services.results import ServiceResult
from utils.password_utils import hash_password, password_error, verify_password

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")

VERIFY_SALT = "email-verify"
RESET_SALT = "password-reset"

SELF_REGISTER_ROLES = (Role.FACULTY, Role.STUDENT)

INVALID_CREDENTIALS = "Invalid email or password."
ACCOUNT_LOCKED = "Account temporarily locked due to too many failed attempts. Try again later."
RESET_REQUESTED = "If your email is registered, you will receive a password reset link."
INVALID_RESET_TOKEN = "Invalid or expired reset token."
INVALID_VERIFY_TOKEN = "Invalid or expired verification token."

ROLE_REQUIRED_FIELDS = {
    Role.STUDENT: ("student_number", "department", "year_of_study"),
    Role.FACULTY: ("employee_id", "department", "designation"),
}


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"])


def _clean(data, field):
    return (data.get(field) or "").strip()


# =========================================================
# LOGIN
# =========================================================

def is_account_locked(user, now=None):
    if user is None:
        return False
    if user.login_attempts < current_app.config["MAX_LOGIN_ATTEMPTS"] or user.last_attempt_time is None:
        return False
    now = now or datetime.now()
    unlock_at = user.last_attempt_time + timedelta(seconds=current_app.config["LOGIN_LOCKOUT_SECONDS"])
    return now < unlock_at


def _record_failed_attempt(user):
    if user is None:
        return
    user.login_attempts = (user.login_attempts or 0) + 1
    user.last_attempt_time = datetime.now()
    db.session.commit()
    logger.warning("Failed login for %s (attempt %s)", user.email, user.login_attempts)


def authenticate(email, password):
    """Check credentials and account state.

    Returns a result whose ``data["user"]`` is the authenticated user. The
    caller is responsible for ``login_user``.
    """
    email = (email or "").strip().lower()
    if not email or not password:
        return ServiceResult.invalid({"email": "Email and password are required."})

    try:
        user = User.query.filter(db.func.lower(User.email) == email).first()
        if is_account_locked(user):
            logger.warning("Login attempt on locked account %s", email)
            return ServiceResult.invalid({"email": ACCOUNT_LOCKED})

        if user is None or not verify_password(password, user.password_hash):
            _record_failed_attempt(user)
            return ServiceResult.invalid({"email": INVALID_CREDENTIALS})

        if user.status == User.STATUS_PENDING:
            return ServiceResult.invalid({"email": "Your account is pending admin approval."})
        if user.status != User.STATUS_ACTIVE:
            return ServiceResult.invalid({"email": INVALID_CREDENTIALS})
        if not user.email_verified:
            return ServiceResult.invalid({"email": "Please verify your email address before logging in."})

        user.login_attempts = 0
        user.last_attempt_time = None
        user.last_login = datetime.now()
        record_audit(user.user_id, "LOGIN", "users", user.user_id, "User logged in")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Login error for %s", email)
        return ServiceResult.failure("An error occurred during login. Please try again.")

    logger.info("User logged in: %s (%s)", user.email, user.role_name)
    return ServiceResult.success("Login successful", id=user.user_id, user=user)


# =========================================================
# REGISTRATION
# =========================================================

def validate_registration(data):
    errors = {}
    for field in ("username", "email", "password", "role", "first_name", "last_name"):
        if not _clean(data, field):
            errors[field] = f"{field.replace('_', ' ').capitalize()} is required."

    username = _clean(data, "username")
    if username and not USERNAME_PATTERN.match(username):
        errors["username"] = "Username must be 3-50 letters, numbers, dots, dashes or underscores."

    email = _clean(data, "email")
    if email and not EMAIL_PATTERN.match(email):
        errors["email"] = "Invalid email format."

    password = data.get("password") or ""
    if password:
        problem = password_error(password, current_app.config["PASSWORD_MIN_LENGTH"])
        if problem:
            errors["password"] = problem
        elif password != (data.get("confirm_password") or ""):
            errors["confirm_password"] = "Passwords do not match."

    role = _clean(data, "role")
    if role and role not in SELF_REGISTER_ROLES:
        errors["role"] = "Invalid role selected."

    for field in ROLE_REQUIRED_FIELDS.get(role, ()):
        if not _clean(data, field):
            errors[field] = f"{field.replace('_', ' ').capitalize()} is required."

    if role == Role.STUDENT and _clean(data, "year_of_study"):
        try:
            year = int(_clean(data, "year_of_study"))
        except ValueError:
            year = 0
        if not 1 <= year <= 6:
            errors["year_of_study"] = "Valid year of study is required."

    semester = _clean(data, "semester")
    if role == Role.STUDENT and semester and not (semester.isdigit() and 1 <= int(semester) <= 12):
        errors["semester"] = "Semester must be between 1 and 12."

    return errors


def _create_profile(user, role_name, data):
    common = {
        "user_id": user.user_id,
        "first_name": _clean(data, "first_name"),
        "last_name": _clean(data, "last_name"),
        "department": _clean(data, "department"),
        "phone": _clean(data, "phone") or None,
    }
    if role_name == Role.STUDENT:
        profile = Student(
            student_number=_clean(data, "student_number"),
            year_of_study=int(_clean(data, "year_of_study")),
            semester=int(_clean(data, "semester") or 1),
            **common
        )
    else:
        profile = Faculty(
            employee_id=_clean(data, "employee_id"),
            designation=_clean(data, "designation"),
            specialization=_clean(data, "specialization") or None,
            **common
        )
    db.session.add(profile)
    return profile


def register_user(data):
    errors = validate_registration(data)
    if errors:
        return ServiceResult.invalid(errors, message="Please correct the errors below.")

    email = _clean(data, "email").lower()
    username = _clean(data, "username")
    if User.query.filter(db.func.lower(User.email) == email).first():
        return ServiceResult.invalid({"email": "Email address already registered."})
    if User.query.filter_by(username=username).first():
        return ServiceResult.invalid({"username": "Username already taken."})

    role = Role.query.filter_by(role_name=_clean(data, "role")).first()
    if role is None:
        logger.error("Role %s missing; run 'flask seed'", _clean(data, "role"))
        return ServiceResult.failure("Registration failed. Please try again.")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(data["password"]),
        role_id=role.role_id,
        status=User.STATUS_PENDING,
        email_verified=False,
    )
    try:
        db.session.add(user)
        db.session.flush()
        _create_profile(user, role.role_name, data)
        record_audit(user.user_id, "REGISTER", "users", user.user_id, f"New {role.role_name} registration")
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Registration conflict for %s", email)
        return ServiceResult.invalid({"email": "An account with these details already exists."})
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Registration failed for %s", email)
        return ServiceResult.failure("Registration failed. Please try again.")

    token = generate_verification_token(user)
    link = url_for("auth.verify_email", token=token, _external=True)
    logger.info("Verification link for %s: %s", user.email, link)
    return ServiceResult.success(
        "Registration successful! Please check your email to verify your account.",
        id=user.user_id,
        verification_link=link,
    )


# =========================================================
# EMAIL VERIFICATION
# =========================================================

def generate_verification_token(user):
    return _serializer().dumps({"uid": user.user_id, "email": user.email}, salt=VERIFY_SALT)


def verify_email(token):
    try:
        payload = _serializer().loads(
            token, salt=VERIFY_SALT, max_age=current_app.config["EMAIL_VERIFICATION_EXPIRY"]
        )
    except SignatureExpired:
        logger.info("Expired verification token")
        return ServiceResult.invalid({"token": INVALID_VERIFY_TOKEN})
    except BadSignature:
        logger.warning("Tampered verification token")
        return ServiceResult.invalid({"token": INVALID_VERIFY_TOKEN})

    user = db.session.get(User, payload.get("uid"))
    if user is None or user.email != payload.get("email"):
        return ServiceResult.invalid({"token": INVALID_VERIFY_TOKEN})
    if user.email_verified:
        return ServiceResult.success("Email already verified.", id=user.user_id)

    try:
        user.email_verified = True
        record_audit(user.user_id, "VERIFY_EMAIL", "users", user.user_id, "Email verified")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Email verification failed for user %s", user.user_id)
        return ServiceResult.failure("Verification failed. Please try again.")

    logger.info("Email verified for %s", user.email)
    return ServiceResult.success(
        "Email verified successfully! Your account is now pending admin approval.", id=user.user_id
    )


# =========================================================
# PASSWORD RESET / CHANGE
# =========================================================

def _password_fingerprint(user):
    # Changing the password changes the hash, which invalidates older tokens
    return user.password_hash[-16:]


def generate_reset_token(user):
    return _serializer().dumps(
        {"uid": user.user_id, "pw": _password_fingerprint(user)}, salt=RESET_SALT
    )


def request_password_reset(email):
    """Issue a reset link when the account exists; the reply never says whether it does."""
    email = (email or "").strip().lower()
    user = User.query.filter(db.func.lower(User.email) == email).first() if email else None
    link = None
    if user is not None and user.status == User.STATUS_ACTIVE:
        link = url_for("auth.reset_password", token=generate_reset_token(user), _external=True)
        logger.info("Password reset link for %s: %s", user.email, link)
    else:
        logger.info("Password reset requested for unknown or inactive email %s", email)
    return ServiceResult.success(RESET_REQUESTED, reset_link=link)


def load_reset_user(token):
    try:
        payload = _serializer().loads(
            token, salt=RESET_SALT, max_age=current_app.config["PASSWORD_RESET_EXPIRY"]
        )
    except (SignatureExpired, BadSignature):
        return None
    user = db.session.get(User, payload.get("uid"))
    if user is None or payload.get("pw") != _password_fingerprint(user):
        return None
    return user


def reset_password(token, new_password, confirm_password=None):
    user = load_reset_user(token)
    if user is None:
        return ServiceResult.invalid({"token": INVALID_RESET_TOKEN})

    problem = password_error(new_password, current_app.config["PASSWORD_MIN_LENGTH"])
    if problem:
        return ServiceResult.invalid({"password": problem})
    if confirm_password is not None and confirm_password != new_password:
        return ServiceResult.invalid({"confirm_password": "Passwords do not match."})

    try:
        user.password_hash = hash_password(new_password)
        user.login_attempts = 0
        user.last_attempt_time = None
        record_audit(user.user_id, "RESET_PASSWORD", "users", user.user_id, "Password reset via token")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Password reset failed for user %s", user.user_id)
        return ServiceResult.failure("Failed to reset password. Please try again.")

    logger.info("Password reset for %s", user.email)
    return ServiceResult.success("Password reset successfully. You can now login with your new password.")


def change_password(user_id, current_password, new_password, confirm_password=None):
    user = db.session.get(User, user_id)
    if user is None:
        return ServiceResult.not_found("User not found.")
    if not verify_password(current_password, user.password_hash):
        return ServiceResult.invalid({"current_password": "Current password is incorrect."})

    problem = password_error(new_password, current_app.config["PASSWORD_MIN_LENGTH"])
    if problem:
        return ServiceResult.invalid({"new_password": problem})
    if confirm_password is not None and confirm_password != new_password:
        return ServiceResult.invalid({"confirm_password": "Passwords do not match."})

    try:
        user.password_hash = hash_password(new_password)
        record_audit(user.user_id, "CHANGE_PASSWORD", "users", user.user_id, "Password changed")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Password change failed for user %s", user_id)
        return ServiceResult.failure("Failed to change password. Please try again.")

    logger.info("Password changed for %s", user.email)
    return ServiceResult.success("Password changed successfully.")


# =========================================================
# APPROVAL
# =========================================================

def get_pending_users():
    return (
        User.query
        .filter_by(status=User.STATUS_PENDING)
        .order_by(User.created_at.asc(), User.user_id.asc())
        .all()
    )


def _decide(user_id, admin_id, status, action, message):
    user = db.session.get(User, user_id)
    if user is None or user.status != User.STATUS_PENDING:
        return ServiceResult.not_found("User not found or already processed.")

    try:
        user.status = status
        user.approved_by = admin_id
        user.approved_at = datetime.now()
        record_audit(admin_id, action, "users", user.user_id, f"{user.username} -> {status}")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("%s failed for user %s", action, user_id)
        return ServiceResult.failure()

    logger.info("User %s %s by admin %s", user.username, status, admin_id)
    return ServiceResult.success(message, id=user.user_id)


def approve_user(user_id, admin_id):
    return _decide(user_id, admin_id, User.STATUS_ACTIVE, "APPROVE_USER", "User approved successfully.")


def reject_user(user_id, admin_id):
    return _decide(user_id, admin_id, User.STATUS_REJECTED, "REJECT_USER", "User registration rejected.")
