class AttendanceError(Exception):
    """Base class for errors raised by the attendance core."""


class PolicyViolation(AttendanceError):
    """A blocked transition. The message is safe to show to the user."""

    def __init__(self, message, status_code=409):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class VerifierError(AttendanceError):
    """The face verifier could not produce a verdict (transport or parse failure)."""
