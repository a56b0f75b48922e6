# config.py
import os

# Keep secrets and tunables in one place; every value can be overridden from the environment.


def _env_float(name, default):
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name, default):
    raw = os.getenv(name)
    return int(raw) if raw else default


class Config:
    SECRET_KEY = os.getenv("APP_SECRET", "secret123")
    JWT_SECRET = os.getenv("JWT_SECRET", "jwt_secret_please_change")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///attendance.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sqlalchemy")  # "sqlalchemy" or "memory"

    FACE_VERIFIER = os.getenv("FACE_VERIFIER", "gemini")  # "gemini" or "static"
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_INSIGHT_MODEL = os.getenv("GEMINI_INSIGHT_MODEL", "gemini-2.5-flash")
    VERIFIER_TIMEOUT_SECONDS = _env_float("VERIFIER_TIMEOUT_SECONDS", 15.0)

    CHECKIN_TTL_SECONDS = _env_int("CHECKIN_TTL_SECONDS", 300)
    SUCCESS_DISPLAY_SECONDS = _env_float("SUCCESS_DISPLAY_SECONDS", 3.0)

    # Refresh intervals handed to the dashboards
    TEACHER_POLL_MS = _env_int("TEACHER_POLL_MS", 2000)
    STUDENT_POLL_MS = _env_int("STUDENT_POLL_MS", 5000)

    DEFAULT_SUBJECT = os.getenv("DEFAULT_SUBJECT", "Computer Networks")
    DEFAULT_NETWORK_ID = os.getenv("DEFAULT_NETWORK_ID", "Classroom-WiFi-A1")

    LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET = "test-jwt-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    STORAGE_BACKEND = "memory"
    FACE_VERIFIER = "static"
    GEMINI_API_KEY = ""
    VERIFIER_TIMEOUT_SECONDS = 2.0
    SUCCESS_DISPLAY_SECONDS = 3.0
