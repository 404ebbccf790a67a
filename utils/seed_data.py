import logging

from flask import current_app

from extensions import db
from models import AdminProfile, Department, Role, User
from utils.password_utils import hash_password

logger = logging.getLogger(__name__)


def seed_roles():
    roles = [
        {"role_id": 1, "role_name": Role.ADMIN},
        {"role_id": 2, "role_name": Role.FACULTY},
        {"role_id": 3, "role_name": Role.STUDENT},
    ]

    for r in roles:
        existing = Role.query.filter(
            (Role.role_id == r["role_id"]) |
            (Role.role_name == r["role_name"])
        ).first()

        if not existing:
            db.session.add(Role(role_id=r["role_id"], role_name=r["role_name"]))

    db.session.commit()
    logger.info("Roles verified (admin=1, faculty=2, student=3)")


def seed_departments():
    departments = [
        {"department_code": "CS", "department_name": "Computer Science"},
        {"department_code": "MATH", "department_name": "Mathematics"},
        {"department_code": "PHY", "department_name": "Physics"},
        {"department_code": "ECE", "department_name": "Electronics and Communication Engineering"},
    ]

    for d in departments:
        existing = Department.query.filter_by(department_code=d["department_code"]).first()
        if not existing:
            db.session.add(Department(**d))

    db.session.commit()
    logger.info("Departments seeded")


def seed_admin():
    email = current_app.config["ADMIN_EMAIL"]
    password = current_app.config["ADMIN_PASSWORD"]
    if not password:
        logger.warning("ADMIN_PASSWORD is not set; skipping admin account")
        return None

    existing = User.query.filter_by(email=email).first()
    if existing:
        return existing

    role = Role.query.filter_by(role_name=Role.ADMIN).first()
    admin = User(
        username="admin",
        email=email,
        password_hash=hash_password(password),
        role_id=role.role_id,
        status=User.STATUS_ACTIVE,
        email_verified=True,
    )
    db.session.add(admin)
    db.session.flush()
    db.session.add(AdminProfile(
        user_id=admin.user_id,
        employee_id="ADM001",
        first_name="System",
        last_name="Administrator",
        designation="Administrator",
    ))
    db.session.commit()
    logger.info("Admin account created: %s", email)
    return admin


def run_seed():
    seed_roles()
    seed_departments()
    seed_admin()
