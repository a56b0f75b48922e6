from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from models import require_iso, to_iso


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"


class VerificationMethod(str, Enum):
    FACE = "FACE"
    MANUAL = "MANUAL"


@dataclass(frozen=True)
class AttendanceRecord:
    id: str
    student_id: str
    student_name: str
    session_id: str
    timestamp: datetime
    status: AttendanceStatus = AttendanceStatus.PRESENT
    verification_method: VerificationMethod = VerificationMethod.FACE
    network_id: Optional[str] = None  # network claimed during check-in

    @property
    def key(self):
        return (self.student_id, self.session_id)

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "session_id": self.session_id,
            "timestamp": to_iso(self.timestamp),
            "status": self.status.value,
            "verification_method": self.verification_method.value,
            "network_id": self.network_id,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            student_id=str(data["student_id"]),
            student_name=data.get("student_name", ""),
            session_id=str(data["session_id"]),
            timestamp=require_iso(data["timestamp"]),
            status=AttendanceStatus(data.get("status", "PRESENT")),
            verification_method=VerificationMethod(data.get("verification_method", "FACE")),
            network_id=data.get("network_id"),
        )
