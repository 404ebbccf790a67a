import pytest

from app import create_app
from config.config import TestingConfig
from extensions import db as _db
from models import AdminProfile, Faculty, Role, Student, User
from services.subject_service import SubjectManager
from utils.password_utils import hash_password
from utils.seed_data import seed_departments, seed_roles

PASSWORD = "Secret123!"

CS101 = {
    "subject_code": "CS101",
    "subject_name": "Intro to CS",
    "credits": "3",
    "duration_hours": "3",
    "department": "CS",
    "semester": "1",
    "year_level": "1",
}


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        _db.create_all()
        seed_roles()
        seed_departments()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(username, role_name, status=User.STATUS_ACTIVE, verified=True, password=PASSWORD):
    role = Role.query.filter_by(role_name=role_name).first()
    user = User(
        username=username,
        email=f"{username}@university.edu",
        password_hash=hash_password(password),
        role_id=role.role_id,
        status=status,
        email_verified=verified,
    )
    _db.session.add(user)
    _db.session.flush()
    return user


@pytest.fixture
def admin_user(app):
    user = make_user("admin", Role.ADMIN)
    _db.session.add(AdminProfile(
        user_id=user.user_id, employee_id="ADM001", first_name="Ada", last_name="Admin",
    ))
    _db.session.commit()
    return user


@pytest.fixture
def make_faculty(app):
    counter = {"n": 0}

    def _make(first_name="Grace", last_name="Hopper", department="Computer Science", status=User.STATUS_ACTIVE):
        counter["n"] += 1
        user = make_user(f"faculty{counter['n']}", Role.FACULTY, status=status)
        faculty = Faculty(
            user_id=user.user_id,
            employee_id=f"EMP{counter['n']:03d}",
            first_name=first_name,
            last_name=last_name,
            department=department,
            designation="Lecturer",
        )
        _db.session.add(faculty)
        _db.session.commit()
        return faculty

    return _make


@pytest.fixture
def faculty(make_faculty):
    return make_faculty()


@pytest.fixture
def student(app):
    user = make_user("student1", Role.STUDENT)
    profile = Student(
        user_id=user.user_id,
        student_number="S0001",
        first_name="Alan",
        last_name="Turing",
        department="Computer Science",
        year_of_study=1,
    )
    _db.session.add(profile)
    _db.session.commit()
    return profile


@pytest.fixture
def manager(app):
    return SubjectManager()


@pytest.fixture
def make_subject(manager, admin_user):
    def _make(**overrides):
        data = dict(CS101, **overrides)
        result = manager.create_subject(data, admin_user.user_id)
        assert result.ok, result.message
        return result.id

    return _make


def login(client, user):
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user.user_id)
        sess["_fresh"] = True


@pytest.fixture
def admin_client(client, admin_user):
    login(client, admin_user)
    return client


@pytest.fixture
def login_as(client):
    def _login(user):
        login(client, user)
        return client

    return _login
