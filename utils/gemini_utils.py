import base64
import binascii
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from utils.errors import VerifierError

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

LIVENESS_PROMPT = """Analyze this image for an attendance system.
Requirements:
1. There must be exactly one human face.
2. The face must be clearly visible (not blurry, not covered).
3. It should look like a live photo, not a photo of a screen (anti-spoofing check).

Return a JSON object with:
- "valid": boolean
- "reason": string (short explanation)
"""

_DATA_URL = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

# Verifier calls run here so a hung request can be abandoned after the timeout.
_verifier_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="face-verifier")

# 2.5 models spend output tokens on thinking; a yes/no verdict needs none.
VERDICT_GENERATION_CONFIG = {
    "temperature": 0.1,
    "responseMimeType": "application/json",
    "thinkingConfig": {"thinkingBudget": 0},
}


@dataclass(frozen=True)
class Verdict:
    valid: bool
    reason: str

    def to_dict(self):
        return {"valid": self.valid, "reason": self.reason}


class FaceVerifier(Protocol):
    def verify(self, image: bytes) -> Verdict:
        """Judge whether `image` shows one clearly visible, live face."""


def decode_image(data: str) -> bytes:
    """Accept raw base64 or a data URL from a canvas snapshot."""
    if not data:
        raise ValueError("No image received")
    cleaned = _DATA_URL.sub("", data.strip())
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Image is not valid base64") from e


def parse_verdict(text: str) -> Verdict:
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise VerifierError("Could not parse AI response.")
    try:
        result = json.loads(match.group(0))
    except ValueError as e:
        raise VerifierError("Could not parse AI response.") from e
    if not isinstance(result, dict) or not isinstance(result.get("valid"), bool):
        raise VerifierError("AI response has no boolean 'valid' field.")
    return Verdict(valid=result["valid"], reason=str(result.get("reason") or ""))


class GeminiClient:
    """Thin wrapper over the Gemini generateContent REST endpoint."""

    def __init__(self, api_key: str, timeout: float = 15.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.http = session or requests.Session()

    def generate(self, model: str, parts: list, generation_config: Optional[dict] = None) -> str:
        if not self.api_key:
            raise VerifierError("GEMINI_API_KEY not configured")

        payload = {"contents": [{"parts": parts}]}
        if generation_config:
            payload["generationConfig"] = generation_config

        try:
            response = self.http.post(
                GEMINI_URL.format(model=model),
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise VerifierError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            raise VerifierError(f"Gemini API error: {response.status_code} - {response.text[:200]}")

        try:
            candidate = response.json()["candidates"][0]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise VerifierError("Gemini response had no candidates") from e
        if not isinstance(candidate, dict):
            raise VerifierError("Gemini response had no candidates")
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text:
            reason = candidate.get("finishReason", "UNKNOWN")
            raise VerifierError(f"Gemini response had no text part (finishReason {reason})")
        return text


class GeminiFaceVerifier:
    """Liveness/quality judgment delegated to a hosted vision model."""

    def __init__(self, client: GeminiClient, model: str = "gemini-2.5-flash"):
        self.client = client
        self.model = model

    def verify(self, image: bytes) -> Verdict:
        parts = [
            {"inline_data": {"mime_type": "image/jpeg", "data": base64.b64encode(image).decode("utf-8")}},
            {"text": LIVENESS_PROMPT},
        ]
        text = self.client.generate(self.model, parts, VERDICT_GENERATION_CONFIG)
        verdict = parse_verdict(text)
        logger.info("Gemini verdict: valid=%s (%s)", verdict.valid, verdict.reason)
        return verdict


class StaticVerifier:
    """Always returns the same verdict. For demos without an API key, and for tests."""

    def __init__(self, valid: bool = True, reason: str = "Static verifier accepted the capture."):
        self.verdict = Verdict(valid=valid, reason=reason)
        self.calls = 0

    def verify(self, image: bytes) -> Verdict:
        self.calls += 1
        return self.verdict


class ClassInsights:
    """Short class-performance summaries for the teacher dashboard."""

    FALLBACK = "Could not generate analysis."

    def __init__(self, client: GeminiClient, model: str = "gemini-2.5-flash"):
        self.client = client
        self.model = model

    def summarize(self, marks, attendance) -> str:
        prompt = (
            "Analyze this class performance data:\n"
            f"Marks: {json.dumps([m.to_dict() for m in marks])}\n"
            f"Attendance Count: {len(attendance)}\n\n"
            "Provide a brief, encouraging summary for the teacher about class performance trends.\n"
            "Keep it under 50 words."
        )
        try:
            text = self.client.generate(self.model, [{"text": prompt}])
        except VerifierError as e:
            logger.warning("Class analysis failed: %s", e)
            return self.FALLBACK
        return text.strip() or "Analysis unavailable."


def verify_with_timeout(verifier, image: bytes, timeout: float) -> Verdict:
    """Run `verifier.verify` but give up after `timeout` seconds. Every failure becomes VerifierError."""
    future = _verifier_pool.submit(verifier.verify, image)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as e:
        future.cancel()
        raise VerifierError(f"Face verifier timed out after {timeout:.1f}s") from e
    except VerifierError:
        raise
    except Exception as e:
        raise VerifierError(f"Face verifier failed: {e}") from e
