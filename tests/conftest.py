from datetime import datetime
from decimal import Decimal

import pytest

from app import create_app
from extensions import db
from models.course import Course
from models.profile import Profile, ROLE_ADMIN, ROLE_USER

PASSWORD = "secret-pass"


class FakeNotifier:
    def __init__(self):
        self.calls = []

    def notify(self, course_id, user_id, status):
        self.calls.append((course_id, user_id, status))
        return True


@pytest.fixture
def app(tmp_path):
    app = create_app(
        TESTING=True,
        SECRET_KEY="test-secret",
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'test.db'}",
        LOG_LEVEL="WARNING",
        NOTIFY_ENABLED=False,
        FUNCTIONS_TOKEN="",
        RESEND_API_KEY="re_test_key",
        ADMIN_NOTIFICATION_EMAIL="organiser@example.org",
        STREAM_HEARTBEAT_SECONDS=0.05,
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def notifier(app):
    fake = FakeNotifier()
    app.extensions["notifier"] = fake
    return fake


@pytest.fixture
def make_profile(app):
    def _make(email="user@example.org", role=ROLE_USER, full_name="Jean Dupont"):
        profile = Profile(email=email, role=role, full_name=full_name)
        profile.set_password(PASSWORD)
        db.session.add(profile)
        db.session.commit()
        return profile

    return _make


@pytest.fixture
def make_course(app):
    def _make(**kwargs):
        fields = {
            "title": "Pâtes fraîches",
            "description": "Tagliatelles et raviolis",
            "date": datetime(2024, 10, 12, 14, 30),
            "location": "Paris",
            "price": Decimal("45.00"),
            "max_seats": 8,
        }
        fields.update(kwargs)
        fields.setdefault("available_seats", fields["max_seats"])
        course = Course(**fields)
        db.session.add(course)
        db.session.commit()
        return course

    return _make


@pytest.fixture
def user(make_profile):
    return make_profile()


@pytest.fixture
def admin(make_profile):
    return make_profile(email="admin@example.org", role=ROLE_ADMIN, full_name="Admin")


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        return client.post("/auth/login", json={"email": email, "password": password})

    return _login
