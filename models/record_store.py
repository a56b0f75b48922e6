import json
import logging
import uuid
from typing import Callable, List, Optional

from models import utcnow
from models.attendance_model import AttendanceRecord
from models.mark_model import DEFAULT_MARKS, SubjectMark
from models.session_model import AttendanceSession

logger = logging.getLogger(__name__)

SESSIONS_KEY = "sessions"
ATTENDANCE_KEY = "attendance"
MARKS_KEY = "marks"


def new_id() -> str:
    return uuid.uuid4().hex


class RecordStore:
    """
    Sessions, attendance records and subject marks, each stored as one JSON
    array under its own key. Every mutation rewrites the full collection.

    The store enforces one rule of its own: a (student, session) pair is
    recorded at most once. Other policy lives in the session manager and the
    submission flow.
    """

    def __init__(self, storage, clock: Callable = utcnow, id_factory: Callable[[], str] = new_id,
                 seed_marks=DEFAULT_MARKS):
        self._storage = storage
        self._clock = clock
        self._new_id = id_factory
        self._seed_marks = tuple(seed_marks)

    # -------------------- raw collections --------------------
    def _load(self, key, factory):
        raw = self._storage.read(key)
        if raw is None:
            return None
        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning("Collection %r is not valid JSON, treating it as empty", key)
            return []
        if not isinstance(items, list):
            logger.warning("Collection %r is not a list, treating it as empty", key)
            return []

        parsed = []
        for item in items:
            try:
                parsed.append(factory(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable entry in %r: %s", key, e)
        return parsed

    def _save(self, key, items):
        self._storage.write(key, json.dumps([i.to_dict() for i in items]))

    def _sessions(self) -> List[AttendanceSession]:
        return self._load(SESSIONS_KEY, AttendanceSession.from_dict) or []

    def _records(self) -> List[AttendanceRecord]:
        return self._load(ATTENDANCE_KEY, AttendanceRecord.from_dict) or []

    # -------------------- sessions --------------------
    def get_active_session(self) -> Optional[AttendanceSession]:
        return next((s for s in self._sessions() if s.is_active), None)

    def get_active_session_for(self, teacher_id) -> Optional[AttendanceSession]:
        return next((s for s in self._sessions() if s.is_active and s.teacher_id == teacher_id), None)

    def get_session(self, session_id) -> Optional[AttendanceSession]:
        return next((s for s in self._sessions() if s.id == session_id), None)

    def list_sessions(self, teacher_id=None) -> List[AttendanceSession]:
        sessions = self._sessions()
        if teacher_id is not None:
            return [s for s in sessions if s.teacher_id == teacher_id]
        return sessions

    def start_session(self, teacher_id, subject, network_id) -> AttendanceSession:
        now = self._clock()
        sessions = self._sessions()
        # Close any existing sessions for this teacher
        for s in sessions:
            if s.teacher_id == teacher_id and s.is_active:
                s.close(now)

        new_session = AttendanceSession(
            id=self._new_id(),
            teacher_id=teacher_id,
            subject=subject,
            start_time=now,
            allowed_network_id=network_id,
        )
        sessions.append(new_session)
        self._save(SESSIONS_KEY, sessions)
        logger.info("Session %s started by %s (%s, network %r)", new_session.id, teacher_id, subject, network_id)
        return new_session

    def stop_session(self, session_id) -> None:
        sessions = self._sessions()
        target = next((s for s in sessions if s.id == session_id and s.is_active), None)
        if target is None:
            return
        target.close(self._clock())
        self._save(SESSIONS_KEY, sessions)
        logger.info("Session %s stopped", session_id)

    # -------------------- attendance --------------------
    def has_marked_attendance(self, student_id, session_id) -> bool:
        return any(r.student_id == student_id and r.session_id == session_id for r in self._records())

    def mark_attendance(self, record: AttendanceRecord) -> bool:
        """Append `record`; returns False when the pair was already recorded."""
        records = self._records()
        if any(r.key == record.key for r in records):
            logger.info("Duplicate attendance for %s in session %s ignored", record.student_id, record.session_id)
            return False
        records.append(record)
        self._save(ATTENDANCE_KEY, records)
        logger.info("Attendance recorded for %s in session %s", record.student_id, record.session_id)
        return True

    def get_attendance_history(self, student_id=None) -> List[AttendanceRecord]:
        records = self._records()
        if student_id:
            return [r for r in records if r.student_id == student_id]
        return records

    def get_session_attendance(self, session_id) -> List[AttendanceRecord]:
        return [r for r in self._records() if r.session_id == session_id]

    # -------------------- marks --------------------
    def get_marks(self, student_id=None) -> List[SubjectMark]:
        marks = self._load(MARKS_KEY, SubjectMark.from_dict)
        if marks is None:
            marks = list(self._seed_marks)
        if student_id:
            return [m for m in marks if m.student_id == student_id]
        return marks
