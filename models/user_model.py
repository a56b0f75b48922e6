from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash


class Role(str, Enum):
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


@dataclass(frozen=True)
class User:
    id: str
    name: str
    role: Role
    email: str
    password_hash: Optional[str] = None  # hashed
    roll_number: Optional[str] = None  # only for students
    face_registered: bool = False
    avatar_url: Optional[str] = None

    def check_password(self, password: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "email": self.email,
            "roll_number": self.roll_number,
            "face_registered": self.face_registered,
            "avatar_url": self.avatar_url,
        }


class UserDirectory:
    """Read-only user lookup. Identities are owned elsewhere; nothing here mutates them."""

    def __init__(self, users: Iterable[User]):
        self._users: List[User] = list(users)
        self._by_id = {u.id: u for u in self._users}
        self._by_email = {u.email.lower(): u for u in self._users}

    def get(self, user_id: str) -> Optional[User]:
        return self._by_id.get(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return self._by_email.get((email or "").strip().lower())

    def students(self) -> List[User]:
        return [u for u in self._users if u.role is Role.STUDENT]

    def authenticate(self, email: str, password: Optional[str] = None, face_verified: bool = False) -> Optional[User]:
        user = self.find_by_email(email)
        if user is None:
            return None
        if face_verified and user.face_registered:
            return user
        if password and user.check_password(password):
            return user
        return None


def default_directory(password: str = "pass") -> UserDirectory:
    """Demo identities: one teacher and two students sharing a password."""
    hashed = generate_password_hash(password)
    return UserDirectory([
        User(
            id="t1",
            name="Prof. Albus D.",
            role=Role.TEACHER,
            email="teacher@edu.com",
            password_hash=hashed,
            face_registered=True,
            avatar_url="https://picsum.photos/id/1/200/200",
        ),
        User(
            id="s1",
            name="Harry P.",
            role=Role.STUDENT,
            email="harry@edu.com",
            password_hash=hashed,
            roll_number="CS-2024-001",
            face_registered=True,
            avatar_url="https://picsum.photos/id/64/200/200",
        ),
        User(
            id="s2",
            name="Hermione G.",
            role=Role.STUDENT,
            email="hermione@edu.com",
            password_hash=hashed,
            roll_number="CS-2024-002",
            face_registered=True,
            avatar_url="https://picsum.photos/id/65/200/200",
        ),
    ])
