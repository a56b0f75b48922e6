from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class SubjectMark:
    id: str
    student_id: str
    subject: str
    internal: int
    external: int
    total: int
    grade: str

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            student_id=str(data["student_id"]),
            subject=data["subject"],
            internal=int(data["internal"]),
            external=int(data["external"]),
            total=int(data["total"]),
            grade=data["grade"],
        )


DEFAULT_MARKS = (
    SubjectMark("m1", "s1", "Potions", 25, 60, 85, "A"),
    SubjectMark("m2", "s1", "Defense", 28, 68, 96, "O"),
    SubjectMark("m3", "s2", "Potions", 30, 70, 100, "O"),
    SubjectMark("m4", "s2", "Defense", 29, 65, 94, "O"),
)
