from flask import Blueprint, current_app, jsonify, request, session

from models.user_model import Role
from utils.context import get_context, role_required
from utils.errors import PolicyViolation
from utils.gemini_utils import decode_image
from utils.jwt_utils import create_flow_token, verify_flow_token
from utils.submission_flow import SubmissionFlow

student_bp = Blueprint("student", __name__)

FLOW_SESSION_KEY = "checkin"


def _load_flow(user):
    ctx = get_context()
    snapshot = verify_flow_token(current_app.config["JWT_SECRET"], session.get(FLOW_SESSION_KEY), user.id)
    return SubmissionFlow.restore(
        ctx.store,
        ctx.verifier,
        user,
        snapshot,
        verifier_timeout=current_app.config["VERIFIER_TIMEOUT_SECONDS"],
        success_display_seconds=current_app.config["SUCCESS_DISPLAY_SECONDS"],
    )


def _save_flow(user, flow):
    session[FLOW_SESSION_KEY] = create_flow_token(
        current_app.config["JWT_SECRET"], user.id, flow.snapshot(), current_app.config["CHECKIN_TTL_SECONDS"]
    )


def _flow_response(user, flow, success=True, status=200):
    _save_flow(user, flow)
    body = flow.to_dict()
    body["success"] = success
    return jsonify(body), status


@student_bp.route("/")
@role_required(Role.STUDENT)
def dashboard(user):
    ctx = get_context()
    active = ctx.store.get_active_session()
    history = ctx.store.get_attendance_history(user.id)
    flow = _load_flow(user)
    return jsonify({
        "user": user.to_dict(),
        "active_session": active.to_dict() if active else None,
        "already_attended": bool(active) and any(r.session_id == active.id for r in history),
        "history": [r.to_dict() for r in history],
        "marks": [m.to_dict() for m in ctx.store.get_marks(user.id)],
        "checkin": flow.to_dict(),
        "poll_interval_ms": current_app.config["STUDENT_POLL_MS"],
    })


@student_bp.route("/checkin")
@role_required(Role.STUDENT)
def checkin_state(user):
    return _flow_response(user, _load_flow(user))


@student_bp.route("/checkin/start", methods=["POST"])
@role_required(Role.STUDENT)
def checkin_start(user):
    flow = _load_flow(user)
    try:
        flow.begin()
    except PolicyViolation as e:
        flow.message = e.message
        return _flow_response(user, flow, success=False, status=e.status_code)
    return _flow_response(user, flow)


@student_bp.route("/checkin/network", methods=["POST"])
@role_required(Role.STUDENT)
def checkin_network(user):
    data = request.get_json(silent=True) or {}
    flow = _load_flow(user)
    try:
        ok = flow.check_network(data.get("network_id") or "")
    except PolicyViolation as e:
        flow.message = e.message
        return _flow_response(user, flow, success=False, status=e.status_code)
    return _flow_response(user, flow, success=ok)


@student_bp.route("/checkin/capture", methods=["POST"])
@role_required(Role.STUDENT)
def checkin_capture(user):
    data = request.get_json(silent=True) or {}
    flow = _load_flow(user)
    try:
        image = decode_image(data.get("image") or "")
    except ValueError as e:
        flow.message = str(e)
        return _flow_response(user, flow, success=False, status=400)
    try:
        verdict = flow.submit_capture(image)
    except PolicyViolation as e:
        flow.message = e.message
        return _flow_response(user, flow, success=False, status=e.status_code)
    return _flow_response(user, flow, success=verdict.valid and flow.record is not None)


@student_bp.route("/checkin/cancel", methods=["POST"])
@role_required(Role.STUDENT)
def checkin_cancel(user):
    flow = _load_flow(user)
    flow.cancel()
    return _flow_response(user, flow)
