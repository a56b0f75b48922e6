# utils/jwt_utils.py
import logging
from datetime import datetime, timedelta, timezone

import jwt

logger = logging.getLogger(__name__)

JWT_ALGO = "HS256"
CHECKIN_TTL_SECONDS = 300  # how long a half-finished check-in stays resumable


def create_flow_token(secret: str, student_id: str, snapshot: dict, ttl_seconds: int = CHECKIN_TTL_SECONDS) -> str:
    """
    Sign a check-in snapshot for one student. Contains:
      - sub (student id)
      - flow (the snapshot dict)
      - iat, exp
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(student_id),
        "flow": snapshot,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGO)


def verify_flow_token(secret: str, token: str, student_id: str):
    """
    Returns the snapshot if the token is valid and belongs to `student_id`, else None.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGO])
    except jwt.ExpiredSignatureError:
        logger.info("Check-in token for %s expired", student_id)
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Rejected check-in token: %s", e)
        return None
    if payload.get("sub") != str(student_id):
        logger.warning("Check-in token presented by %s belongs to another student", student_id)
        return None
    return payload.get("flow")
