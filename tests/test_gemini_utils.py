import base64
import threading
from unittest.mock import MagicMock

import pytest
import requests

from models.mark_model import DEFAULT_MARKS
from utils.errors import VerifierError
from utils.gemini_utils import (
    ClassInsights,
    GeminiClient,
    GeminiFaceVerifier,
    StaticVerifier,
    Verdict,
    decode_image,
    parse_verdict,
    verify_with_timeout,
)


def gemini_response(text, status=200):
    response = MagicMock()
    response.status_code = status
    response.text = text
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return response


def test_parse_verdict_finds_json_inside_prose():
    text = 'Sure!\n```json\n{"valid": true, "reason": "One clear face"}\n```'
    assert parse_verdict(text) == Verdict(True, "One clear face")


@pytest.mark.parametrize("text", ["no json here", '{"valid": "yes"}', "{broken", ""])
def test_parse_verdict_rejects_unusable_replies(text):
    with pytest.raises(VerifierError):
        parse_verdict(text)


def test_decode_image_accepts_data_urls_and_raw_base64():
    raw = b"\xff\xd8\xff\xe0jpeg"
    encoded = base64.b64encode(raw).decode()
    assert decode_image(f"data:image/jpeg;base64,{encoded}") == raw
    assert decode_image(encoded) == raw
    with pytest.raises(ValueError):
        decode_image("")
    with pytest.raises(ValueError):
        decode_image("data:image/png;base64,@@@")


def test_face_verifier_posts_image_and_prompt():
    http = MagicMock()
    http.post.return_value = gemini_response('{"valid": false, "reason": "Photo of a screen"}')
    verifier = GeminiFaceVerifier(GeminiClient("key-123", timeout=7, session=http), model="gemini-test")

    verdict = verifier.verify(b"img")

    assert verdict == Verdict(False, "Photo of a screen")
    args, kwargs = http.post.call_args
    assert "gemini-test:generateContent" in args[0]
    assert kwargs["params"] == {"key": "key-123"}
    assert kwargs["timeout"] == 7
    parts = kwargs["json"]["contents"][0]["parts"]
    assert parts[0]["inline_data"]["data"] == base64.b64encode(b"img").decode()
    assert "anti-spoofing" in parts[1]["text"]


def test_face_verifier_maps_http_and_transport_failures():
    http = MagicMock()
    verifier = GeminiFaceVerifier(GeminiClient("key", session=http))

    http.post.return_value = gemini_response("quota exceeded", status=429)
    with pytest.raises(VerifierError, match="429"):
        verifier.verify(b"img")

    http.post.side_effect = requests.ConnectionError("offline")
    with pytest.raises(VerifierError):
        verifier.verify(b"img")


def test_missing_api_key_fails_without_calling_out():
    http = MagicMock()
    with pytest.raises(VerifierError, match="GEMINI_API_KEY"):
        GeminiFaceVerifier(GeminiClient("", session=http)).verify(b"img")
    http.post.assert_not_called()


def test_class_insights_summary_and_fallback():
    http = MagicMock()
    http.post.return_value = gemini_response("  The class is doing great.  ")
    insights = ClassInsights(GeminiClient("key", session=http))
    assert insights.summarize(DEFAULT_MARKS, []) == "The class is doing great."
    prompt = http.post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
    assert "Potions" in prompt and "Attendance Count: 0" in prompt

    http.post.side_effect = requests.Timeout("slow")
    assert insights.summarize(DEFAULT_MARKS, []) == ClassInsights.FALLBACK


def test_verdict_request_disables_thinking_and_asks_for_json():
    http = MagicMock()
    http.post.return_value = gemini_response('{"valid": true, "reason": "ok"}')
    GeminiFaceVerifier(GeminiClient("key", session=http)).verify(b"img")

    config = http.post.call_args.kwargs["json"]["generationConfig"]
    assert "maxOutputTokens" not in config
    assert config["thinkingConfig"] == {"thinkingBudget": 0}
    assert config["responseMimeType"] == "application/json"


def test_truncated_reply_without_parts_is_a_verifier_error():
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"candidates": [{"content": {"role": "model"}, "finishReason": "MAX_TOKENS"}]}
    http = MagicMock()
    http.post.return_value = response

    with pytest.raises(VerifierError, match="MAX_TOKENS"):
        GeminiFaceVerifier(GeminiClient("key", session=http)).verify(b"img")


def test_verify_with_timeout_gives_up_on_hung_verifier():
    release = threading.Event()

    class Hanging:
        def verify(self, image):
            release.wait(5)
            return Verdict(True, "late")

    try:
        with pytest.raises(VerifierError, match="timed out"):
            verify_with_timeout(Hanging(), b"img", 0.05)
    finally:
        release.set()
    assert verify_with_timeout(StaticVerifier(False, "blurry"), b"img", 1.0) == Verdict(False, "blurry")
