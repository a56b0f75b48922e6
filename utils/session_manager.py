import logging
from enum import Enum

from utils.errors import PolicyViolation

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NO_SESSION = "NO_SESSION"
    ACTIVE = "ACTIVE"


class SessionLifecycleManager:
    """One active session per teacher. All state lives in the record store."""

    def __init__(self, store):
        self.store = store

    def current_session(self, teacher_id):
        return self.store.get_active_session_for(teacher_id)

    def state_for(self, teacher_id) -> SessionState:
        if self.current_session(teacher_id) is None:
            return SessionState.NO_SESSION
        return SessionState.ACTIVE

    def start_session(self, teacher_id, subject, network_id):
        subject = (subject or "").strip()
        network_id = (network_id or "").strip()
        if not subject:
            raise PolicyViolation("Subject is required to start a session.", 400)
        if not network_id:
            raise PolicyViolation("A classroom network name is required.", 400)

        previous = self.current_session(teacher_id)
        session = self.store.start_session(teacher_id, subject, network_id)
        if previous is not None:
            logger.info("Session %s superseded by %s for teacher %s", previous.id, session.id, teacher_id)
        return session

    def stop_session(self, teacher_id, session_id=None):
        """Stop the teacher's active session. Returns the closed session, or None if nothing was active."""
        if session_id is None:
            target = self.current_session(teacher_id)
        else:
            target = self.store.get_session(session_id)
            if target is not None and target.teacher_id != teacher_id:
                raise PolicyViolation("You can only stop your own sessions.", 403)
        if target is None or not target.is_active:
            return None

        self.store.stop_session(target.id)
        return self.store.get_session(target.id)
