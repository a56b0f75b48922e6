import base64
import threading

from utils.context import EXTENSION_KEY
from utils.gemini_utils import StaticVerifier, Verdict

IMAGE = "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8snapshot").decode()


def start_lab_session(teacher_client, network_id="Lab-5"):
    resp = teacher_client.post("/faculty/sessions", json={"subject": "Networks", "network_id": network_id})
    assert resp.status_code == 201
    return resp.get_json()["session"]


def test_login_rejects_bad_password(app):
    client = app.test_client()
    resp = client.post("/login", json={"email": "harry@edu.com", "password": "nope"})
    assert resp.status_code == 401
    assert client.get("/me").get_json() == {"user": None}


def test_face_login_uses_verifier(app):
    client = app.test_client()
    resp = client.post("/face_login", json={"email": "hermione@edu.com", "image": IMAGE})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == "s2"

    app.extensions[EXTENSION_KEY].verifier = StaticVerifier(False, "No face found")
    other = app.test_client()
    resp = other.post("/face_login", json={"email": "harry@edu.com", "image": IMAGE})
    assert resp.status_code == 401
    assert resp.get_json()["msg"] == "No face found"


def test_roles_are_enforced(app, student_client):
    assert app.test_client().get("/faculty/").status_code == 401
    assert student_client.post("/faculty/sessions", json={}).status_code == 403


def test_end_to_end_checkin(teacher_client, student_client):
    session = start_lab_session(teacher_client)

    dash = student_client.get("/student/").get_json()
    assert dash["active_session"]["id"] == session["id"]
    assert dash["already_attended"] is False

    assert student_client.post("/student/checkin/start").get_json()["state"] == "NETWORK_CHECK"
    body = student_client.post("/student/checkin/network", json={"network_id": "Lab-5"}).get_json()
    assert body["state"] == "LIVENESS_CHECK"
    body = student_client.post("/student/checkin/capture", json={"image": IMAGE}).get_json()
    assert body["success"] is True
    assert body["state"] == "SUCCESS"

    records = teacher_client.get(f"/faculty/sessions/{session['id']}/attendance").get_json()["attendance"]
    assert len(records) == 1
    assert records[0]["status"] == "PRESENT"
    assert records[0]["verification_method"] == "FACE"
    assert records[0]["network_id"] == "Lab-5"

    again = student_client.post("/student/checkin/start")
    assert again.status_code == 409
    assert "already marked" in again.get_json()["message"]
    assert student_client.get("/student/").get_json()["already_attended"] is True
    assert len(teacher_client.get("/faculty/").get_json()["attendance"]) == 1


def test_wrong_network_blocks_checkin(teacher_client, student_client):
    start_lab_session(teacher_client)
    student_client.post("/student/checkin/start")

    body = student_client.post("/student/checkin/network", json={"network_id": "Guest-WiFi"}).get_json()
    assert body["success"] is False
    assert body["state"] == "NETWORK_CHECK"

    capture = student_client.post("/student/checkin/capture", json={"image": IMAGE})
    assert capture.status_code == 409
    assert capture.get_json()["state"] == "NETWORK_CHECK"
    assert student_client.get("/student/checkin").get_json()["state"] == "NETWORK_CHECK"


def test_rejected_capture_keeps_student_in_liveness_check(app, teacher_client, student_client):
    session = start_lab_session(teacher_client)
    app.extensions[EXTENSION_KEY].verifier = StaticVerifier(False, "Face is covered")

    student_client.post("/student/checkin/start")
    student_client.post("/student/checkin/network", json={"network_id": "Lab-5"})
    body = student_client.post("/student/checkin/capture", json={"image": IMAGE}).get_json()

    assert body["success"] is False
    assert body["state"] == "LIVENESS_CHECK"
    assert body["message"] == "Face is covered"
    assert teacher_client.get(f"/faculty/sessions/{session['id']}/attendance").get_json()["attendance"] == []

    assert student_client.post("/student/checkin/cancel").get_json()["state"] == "IDLE"


def test_checkin_without_session(student_client):
    resp = student_client.post("/student/checkin/start")
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "No active attendance session found."


def test_teacher_session_lifecycle(teacher_client):
    first = start_lab_session(teacher_client)
    second = start_lab_session(teacher_client, "Lab-6")

    sessions = teacher_client.get("/faculty/sessions").get_json()["sessions"]
    assert [s["is_active"] for s in sessions] == [False, True]
    assert sessions[0]["id"] == first["id"] and sessions[0]["end_time"]

    stopped = teacher_client.post("/faculty/sessions/stop", json={}).get_json()["session"]
    assert stopped["id"] == second["id"]
    assert teacher_client.get("/faculty/").get_json()["state"] == "NO_SESSION"
    assert teacher_client.post("/faculty/sessions/stop", json={}).get_json()["session"] is None


def test_blank_network_is_rejected(teacher_client):
    resp = teacher_client.post("/faculty/sessions", json={"subject": "Networks", "network_id": ""})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_export_csv_and_network_qr(teacher_client, student_client):
    session = start_lab_session(teacher_client)
    student_client.post("/student/checkin/start")
    student_client.post("/student/checkin/network", json={"network_id": "Lab-5"})
    student_client.post("/student/checkin/capture", json={"image": IMAGE})

    resp = teacher_client.get(f"/faculty/sessions/{session['id']}/export_csv")
    assert resp.mimetype == "text/csv"
    lines = resp.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith("Session ID,Subject,Student ID")
    assert "Harry P." in lines[1] and "Lab-5" in lines[1]

    qr = teacher_client.get(f"/faculty/sessions/{session['id']}/network_qr").get_json()
    assert qr["network_id"] == "Lab-5"
    assert base64.b64decode(qr["qr"]).startswith(b"\x89PNG")

    assert teacher_client.get("/faculty/sessions/unknown/export_csv").status_code == 404


def test_insights_fall_back_without_api_key(teacher_client):
    resp = teacher_client.post("/faculty/insights")
    assert resp.get_json()["insight"] == "Could not generate analysis."


def test_student_dashboard_lists_own_marks(student_client):
    dash = student_client.get("/student/").get_json()
    assert {m["subject"] for m in dash["marks"]} == {"Potions", "Defense"}
    assert all(m["student_id"] == "s1" for m in dash["marks"])
    assert dash["checkin"]["state"] == "IDLE"
    assert dash["poll_interval_ms"] == 5000


def test_face_login_times_out_on_hung_verifier(app):
    release = threading.Event()

    class Hanging:
        def verify(self, image):
            release.wait(5)
            return Verdict(True, "late")

    app.extensions[EXTENSION_KEY].verifier = Hanging()
    app.config["VERIFIER_TIMEOUT_SECONDS"] = 0.05
    try:
        resp = app.test_client().post("/face_login", json={"email": "harry@edu.com", "image": IMAGE})
    finally:
        release.set()

    assert resp.status_code == 503
    assert resp.get_json()["success"] is False
