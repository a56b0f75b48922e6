from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models import from_iso, require_iso, to_iso


@dataclass
class AttendanceSession:
    id: str
    teacher_id: str
    subject: str
    start_time: datetime
    allowed_network_id: str  # the Wi-Fi name students must claim
    end_time: Optional[datetime] = None
    is_active: bool = True

    def close(self, when: datetime) -> None:
        self.is_active = False
        self.end_time = when

    def to_dict(self):
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "subject": self.subject,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "allowed_network_id": self.allowed_network_id,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            teacher_id=str(data["teacher_id"]),
            subject=data["subject"],
            start_time=require_iso(data["start_time"]),
            end_time=from_iso(data.get("end_time")),
            allowed_network_id=data["allowed_network_id"],
            is_active=bool(data.get("is_active", False)),
        )
