import pytest

from app import create_app
from config import TestingConfig
from models.record_store import RecordStore
from models.storage import MemoryStorage
from models.user_model import Role, User
from utils.gemini_utils import StaticVerifier


class FakeClock:
    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return RecordStore(storage)


@pytest.fixture
def student():
    return User(id="s1", name="Harry P.", role=Role.STUDENT, email="harry@edu.com", roll_number="CS-2024-001")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def accepting_verifier():
    return StaticVerifier(valid=True, reason="One clear live face.")


@pytest.fixture
def app():
    return create_app(TestingConfig)


@pytest.fixture
def teacher_client(app):
    client = app.test_client()
    resp = client.post("/login", json={"email": "teacher@edu.com", "password": "pass"})
    assert resp.status_code == 200
    return client


@pytest.fixture
def student_client(app):
    client = app.test_client()
    resp = client.post("/login", json={"email": "harry@edu.com", "password": "pass"})
    assert resp.status_code == 200
    return client
