# app.py
import logging

from flask import Flask, jsonify, redirect, url_for

from config import Config
from models import db
from models.record_store import RecordStore
from models.storage import MemoryStorage, SQLAlchemyStorage
from models.user_model import default_directory
from routes.auth_routes import auth_bp
from routes.faculty_routes import faculty_bp
from routes.student_routes import student_bp
from utils.context import EXTENSION_KEY, AttendanceContext
from utils.errors import PolicyViolation
from utils.gemini_utils import ClassInsights, GeminiClient, GeminiFaceVerifier, StaticVerifier
from utils.session_manager import SessionLifecycleManager

logger = logging.getLogger(__name__)


def configure_logging(level_name):
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_storage(app):
    backend = app.config["STORAGE_BACKEND"]
    if backend == "memory":
        return MemoryStorage()
    if backend == "sqlalchemy":
        db.init_app(app)
        with app.app_context():
            db.create_all()
        return SQLAlchemyStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r}")


def build_verifier(app, client):
    kind = app.config["FACE_VERIFIER"]
    if kind == "static":
        logger.warning("Using the static face verifier; every capture is accepted")
        return StaticVerifier()
    if kind == "gemini":
        if not client.api_key:
            logger.warning("GEMINI_API_KEY not set; face checks will fail until it is provided")
        return GeminiFaceVerifier(client, model=app.config["GEMINI_MODEL"])
    raise ValueError(f"Unknown FACE_VERIFIER {kind!r}")


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    configure_logging(app.config["LOG_LEVEL"])

    store = RecordStore(build_storage(app))
    client = GeminiClient(app.config["GEMINI_API_KEY"], timeout=app.config["VERIFIER_TIMEOUT_SECONDS"])
    app.extensions[EXTENSION_KEY] = AttendanceContext(
        store=store,
        sessions=SessionLifecycleManager(store),
        verifier=build_verifier(app, client),
        insights=ClassInsights(client, model=app.config["GEMINI_INSIGHT_MODEL"]),
        users=default_directory(),
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(faculty_bp, url_prefix="/faculty")
    app.register_blueprint(student_bp, url_prefix="/student")

    @app.errorhandler(PolicyViolation)
    def policy_violation(e):
        return jsonify({"success": False, "msg": e.message}), e.status_code

    @app.route("/")
    def root():
        return redirect(url_for("auth.me"))

    return app


# -------------------- Run --------------------
if __name__ == "__main__":
    create_app().run(debug=True)
