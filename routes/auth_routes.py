import logging

from flask import Blueprint, current_app, jsonify, request, session

from utils.context import current_user, get_context
from utils.errors import VerifierError
from utils.gemini_utils import decode_image, verify_with_timeout

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _payload():
    return request.get_json(silent=True) or request.form


def _login(user):
    session.clear()
    session["user_id"] = user.id
    session["role"] = user.role.value
    logger.info("%s logged in as %s", user.email, user.role.value)
    return jsonify({"success": True, "user": user.to_dict()})


@auth_bp.route("/login", methods=["POST"])
def login():
    data = _payload()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    user = get_context().users.authenticate(email, password=password)
    if user is None:
        return jsonify({"success": False, "msg": "Invalid credentials"}), 401
    return _login(user)


@auth_bp.route("/face_login", methods=["POST"])
def face_login():
    data = _payload()
    email = (data.get("email") or "").strip()
    try:
        image = decode_image(data.get("image") or "")
    except ValueError as e:
        return jsonify({"success": False, "msg": str(e)}), 400

    ctx = get_context()
    try:
        verdict = verify_with_timeout(ctx.verifier, image, current_app.config["VERIFIER_TIMEOUT_SECONDS"])
    except VerifierError as e:
        logger.warning("Face login unavailable: %s", e)
        return jsonify({"success": False, "msg": "Face verification is unavailable right now."}), 503
    if not verdict.valid:
        return jsonify({"success": False, "msg": verdict.reason}), 401

    user = ctx.users.authenticate(email, face_verified=True)
    if user is None:
        return jsonify({"success": False, "msg": "Face not recognized or user not found."}), 401
    return _login(user)


@auth_bp.route("/logout")
def logout():
    session.clear()
    return jsonify({"success": True})


@auth_bp.route("/me")
def me():
    user = current_user()
    return jsonify({"user": user.to_dict() if user else None})
