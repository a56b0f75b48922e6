import logging
import time
from enum import Enum
from typing import Optional

from models import utcnow
from models.attendance_model import AttendanceRecord, AttendanceStatus, VerificationMethod
from models.record_store import new_id
from utils.errors import PolicyViolation, VerifierError
from utils.gemini_utils import Verdict, verify_with_timeout

logger = logging.getLogger(__name__)

SOFT_FAILURE_MESSAGE = "Face verification is unavailable right now. Please try again."


class FlowState(str, Enum):
    IDLE = "IDLE"
    NETWORK_CHECK = "NETWORK_CHECK"
    LIVENESS_CHECK = "LIVENESS_CHECK"
    SUCCESS = "SUCCESS"


class SubmissionFlow:
    """
    One student's check-in: IDLE -> NETWORK_CHECK -> LIVENESS_CHECK -> SUCCESS.

    A blocked step leaves the flow where it is with `message` set. The only
    side effect is the single record written on entering SUCCESS; the flow
    drops back to IDLE once the success screen has been shown long enough.
    """

    def __init__(self, store, verifier, student, verifier_timeout=15.0, success_display_seconds=3.0,
                 clock=time.time, now=utcnow):
        self.store = store
        self.verifier = verifier
        self.student = student
        self.verifier_timeout = verifier_timeout
        self.success_display_seconds = success_display_seconds
        self._clock = clock
        self._now = now

        self._state = FlowState.IDLE
        self.session = None
        self.observed_network: Optional[str] = None
        self.message = ""
        self.record: Optional[AttendanceRecord] = None
        self._success_at: Optional[float] = None

    # -------------------- state --------------------
    @property
    def state(self) -> FlowState:
        if self._state is FlowState.SUCCESS and self._clock() - self._success_at >= self.success_display_seconds:
            self._reset()
        return self._state

    def _reset(self, message=""):
        self._state = FlowState.IDLE
        self.session = None
        self.observed_network = None
        self.record = None
        self._success_at = None
        self.message = message

    def _require(self, expected: FlowState):
        if self.state is not expected:
            raise PolicyViolation(f"Check-in is not waiting for this step (current step: {self._state.value}).")

    # -------------------- transitions --------------------
    def begin(self):
        # Starting over from SUCCESS just dismisses the confirmation early.
        if self.state not in (FlowState.IDLE, FlowState.SUCCESS):
            raise PolicyViolation(f"A check-in is already in progress (current step: {self._state.value}).")
        active = self.store.get_active_session()
        if active is None:
            raise PolicyViolation("No active attendance session found.")
        history = self.store.get_attendance_history(self.student.id)
        if any(r.session_id == active.id for r in history):
            raise PolicyViolation(f"You have already marked attendance for {active.subject}.")

        self._reset()
        self.session = active
        self._state = FlowState.NETWORK_CHECK
        return self.session

    def check_network(self, claimed_network_id) -> bool:
        self._require(FlowState.NETWORK_CHECK)
        self.observed_network = claimed_network_id
        if claimed_network_id != self.session.allowed_network_id:
            self.message = f"You must be connected to: {self.session.allowed_network_id}"
            logger.info("Network check failed for %s: %r != %r",
                        self.student.id, claimed_network_id, self.session.allowed_network_id)
            return False

        self.message = ""
        self._state = FlowState.LIVENESS_CHECK
        return True

    def submit_capture(self, image: bytes) -> Verdict:
        self._require(FlowState.LIVENESS_CHECK)

        verdict = self._verify(image)
        if not verdict.valid:
            self.message = verdict.reason
            return verdict

        current = self.store.get_session(self.session.id)
        if current is None or not current.is_active:
            logger.info("Session %s ended before %s finished checking in", self.session.id, self.student.id)
            self._reset("The attendance session has ended.")
            return verdict

        self.record = AttendanceRecord(
            id=new_id(),
            student_id=self.student.id,
            student_name=self.student.name,
            session_id=self.session.id,
            timestamp=self._now(),
            status=AttendanceStatus.PRESENT,
            verification_method=VerificationMethod.FACE,
            network_id=self.observed_network,
        )
        if not self.store.mark_attendance(self.record):
            # Another device got there first; the stored record stands.
            self._reset(f"You have already marked attendance for {self.session.subject}.")
            return verdict
        self.message = "Attendance Marked!"
        self._state = FlowState.SUCCESS
        self._success_at = self._clock()
        return verdict

    def cancel(self):
        if self.state in (FlowState.NETWORK_CHECK, FlowState.LIVENESS_CHECK):
            self._reset()

    def _verify(self, image) -> Verdict:
        try:
            return verify_with_timeout(self.verifier, image, self.verifier_timeout)
        except VerifierError:
            logger.exception("Face verifier failed for %s", self.student.id)
        return Verdict(valid=False, reason=SOFT_FAILURE_MESSAGE)

    # -------------------- persistence between requests --------------------
    def snapshot(self) -> dict:
        state = self.state
        return {
            "state": state.value,
            "session_id": self.session.id if self.session else None,
            "observed_network": self.observed_network,
            "message": self.message,
            "success_at": self._success_at,
            "record_id": self.record.id if self.record else None,
        }

    @classmethod
    def restore(cls, store, verifier, student, snapshot: Optional[dict], **kwargs):
        flow = cls(store, verifier, student, **kwargs)
        if not snapshot:
            return flow

        try:
            state = FlowState(snapshot.get("state", "IDLE"))
        except ValueError:
            return flow
        session = store.get_session(snapshot.get("session_id")) if snapshot.get("session_id") else None
        if state is FlowState.IDLE or session is None:
            flow.message = snapshot.get("message", "") if state is FlowState.IDLE else ""
            return flow

        if state is not FlowState.SUCCESS and not session.is_active:
            flow.message = "The attendance session has ended."
            return flow

        flow._state = state
        flow.session = session
        flow.observed_network = snapshot.get("observed_network")
        flow.message = snapshot.get("message", "")
        if state is FlowState.SUCCESS:
            flow._success_at = snapshot.get("success_at") or 0.0
            flow.record = next((r for r in store.get_session_attendance(session.id)
                                if r.id == snapshot.get("record_id")), None)
        return flow

    def to_dict(self) -> dict:
        state = self.state
        return {
            "state": state.value,
            "session": self.session.to_dict() if self.session else None,
            "observed_network": self.observed_network,
            "message": self.message,
            "record": self.record.to_dict() if self.record else None,
        }
