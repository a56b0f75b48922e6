import csv
import io

from flask import Blueprint, Response, current_app, jsonify, request

from models.user_model import Role
from utils.context import get_context, role_required
from utils.qr_utils import generate_network_qr

faculty_bp = Blueprint("faculty", __name__)


def _own_session(user, session_id):
    att_session = get_context().store.get_session(session_id)
    if att_session is None or att_session.teacher_id != user.id:
        return None
    return att_session


@faculty_bp.route("/")
@role_required(Role.TEACHER)
def dashboard(user):
    ctx = get_context()
    active = ctx.sessions.current_session(user.id)
    attendance = ctx.store.get_session_attendance(active.id) if active else []
    return jsonify({
        "user": user.to_dict(),
        "state": ctx.sessions.state_for(user.id).value,
        "active_session": active.to_dict() if active else None,
        "attendance": [r.to_dict() for r in attendance],
        "students": [s.to_dict() for s in ctx.users.students()],
        "marks": [m.to_dict() for m in ctx.store.get_marks()],
        "defaults": {
            "subject": current_app.config["DEFAULT_SUBJECT"],
            "network_id": current_app.config["DEFAULT_NETWORK_ID"],
        },
        "poll_interval_ms": current_app.config["TEACHER_POLL_MS"],
    })


@faculty_bp.route("/sessions", methods=["GET"])
@role_required(Role.TEACHER)
def list_sessions(user):
    sessions = get_context().store.list_sessions(user.id)
    return jsonify({"sessions": [s.to_dict() for s in sessions]})


@faculty_bp.route("/sessions", methods=["POST"])
@role_required(Role.TEACHER)
def start_session(user):
    data = request.get_json(silent=True) or request.form
    subject = data.get("subject", current_app.config["DEFAULT_SUBJECT"])
    network_id = data.get("network_id", current_app.config["DEFAULT_NETWORK_ID"])
    new_session = get_context().sessions.start_session(user.id, subject, network_id)
    return jsonify({"success": True, "session": new_session.to_dict()}), 201


@faculty_bp.route("/sessions/stop", methods=["POST"])
@role_required(Role.TEACHER)
def stop_session(user):
    data = request.get_json(silent=True) or {}
    stopped = get_context().sessions.stop_session(user.id, data.get("session_id"))
    return jsonify({"success": True, "session": stopped.to_dict() if stopped else None})


@faculty_bp.route("/sessions/<session_id>/attendance")
@role_required(Role.TEACHER)
def session_attendance(user, session_id):
    if _own_session(user, session_id) is None:
        return jsonify({"success": False, "msg": "Session not found"}), 404
    records = get_context().store.get_session_attendance(session_id)
    return jsonify({"session_id": session_id, "attendance": [r.to_dict() for r in records]})


@faculty_bp.route("/sessions/<session_id>/export_csv")
@role_required(Role.TEACHER)
def export_csv(user, session_id):
    att_session = _own_session(user, session_id)
    if att_session is None:
        return jsonify({"success": False, "msg": "Session not found"}), 404

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["Session ID", "Subject", "Student ID", "Student Name", "Status", "Method", "Network", "Timestamp"])
    for r in get_context().store.get_session_attendance(session_id):
        writer.writerow([
            r.session_id, att_session.subject, r.student_id, r.student_name,
            r.status.value, r.verification_method.value, r.network_id or "", r.timestamp.isoformat(),
        ])

    filename = f"attendance_{att_session.start_time.strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        buf.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@faculty_bp.route("/sessions/<session_id>/network_qr")
@role_required(Role.TEACHER)
def network_qr(user, session_id):
    att_session = _own_session(user, session_id)
    if att_session is None:
        return jsonify({"success": False, "msg": "Session not found"}), 404
    return jsonify({"network_id": att_session.allowed_network_id,
                    "qr": generate_network_qr(att_session.allowed_network_id)})


@faculty_bp.route("/marks")
@role_required(Role.TEACHER)
def marks(user):
    return jsonify({"marks": [m.to_dict() for m in get_context().store.get_marks()]})


@faculty_bp.route("/insights", methods=["POST"])
@role_required(Role.TEACHER)
def insights(user):
    ctx = get_context()
    active = ctx.sessions.current_session(user.id)
    attendance = ctx.store.get_session_attendance(active.id) if active else []
    summary = ctx.insights.summarize(ctx.store.get_marks(), attendance)
    return jsonify({"insight": summary})
