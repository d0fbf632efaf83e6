"""Unit tests for ClassifierService and verdict decoding.

Tests:
- parse_verdict(): valid JSON, code fences, fallbacks (malformed, missing
  fields, unknown verdict, out-of-range confidence)
- classify(): request shape, non-2xx / timeout -> ClassifierUnavailableError,
  malformed envelope -> fallback, missing key -> ClassifierNotConfiguredError
"""

import json

import httpx
import pytest

from app.models.moderation import (
    ClassifierNotConfiguredError,
    ClassifierUnavailableError,
    Verdict,
)
from app.services.classifier_service import (
    SYSTEM_PROMPT,
    ClassifierService,
    build_user_message,
    parse_verdict,
)

CLASSIFIER_URL = "https://openrouter.test/api/v1/chat/completions"


def _completion(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _service(handler, api_key: str = "test-key") -> ClassifierService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ClassifierService(
        api_key=api_key,
        model="google/gemini-2.0-flash-001",
        url=CLASSIFIER_URL,
        timeout=5.0,
        client=client,
    )


# =============================================================================
# parse_verdict()
# =============================================================================


class TestParseVerdict:
    """Tests for parse_verdict()."""

    @pytest.mark.unit
    def test_valid_reply(self) -> None:
        verdict = parse_verdict('{"verdict": "block", "confidence": 0.9, "reason": "insults"}')
        assert verdict.verdict == Verdict.BLOCK
        assert verdict.confidence == 0.9
        assert verdict.reason == "insults"

    @pytest.mark.unit
    def test_verdict_is_case_insensitive(self) -> None:
        verdict = parse_verdict('{"verdict": " WARN ", "confidence": 0.6, "reason": "spam"}')
        assert verdict.verdict == Verdict.WARN

    @pytest.mark.unit
    def test_strips_code_fences(self) -> None:
        content = '```json\n{"verdict": "safe", "confidence": 0.95, "reason": "greeting"}\n```'
        verdict = parse_verdict(content)
        assert verdict.verdict == Verdict.SAFE
        assert verdict.confidence == 0.95

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "content",
        [
            None,
            "",
            "not json at all",
            '{"verdict": "block", "confidence": 0.9',
            '["block", 0.9]',
            '{"verdict": "block", "reason": "no confidence"}',
            '{"confidence": 0.9, "reason": "no verdict"}',
            '{"verdict": "block", "confidence": 0.9}',
            '{"verdict": "block", "confidence": 1.7, "reason": "out of range"}',
            '{"verdict": "block", "confidence": "very", "reason": "not a number"}',
        ],
    )
    def test_malformed_reply_falls_back_to_safe(self, content) -> None:
        verdict = parse_verdict(content)
        assert verdict.verdict == Verdict.SAFE
        assert verdict.confidence == 0.5
        assert verdict.reason == "could not analyze"

    @pytest.mark.unit
    def test_unknown_verdict_falls_back_and_logs_distinctly(self, caplog) -> None:
        verdict = parse_verdict('{"verdict": "ban", "confidence": 0.99, "reason": "bad"}')

        assert verdict.verdict == Verdict.SAFE
        assert verdict.confidence == 0.5
        assert "unknown verdict" in caplog.text


class TestBuildUserMessage:
    @pytest.mark.unit
    def test_includes_evidence_and_reason_verbatim(self) -> None:
        message = build_user_message('say "hi"', "оскорбления")
        assert 'say "hi"' in message
        assert "оскорбления" in message

    @pytest.mark.unit
    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_missing_reason(self, reason) -> None:
        assert "not specified" in build_user_message("hello", reason)


# =============================================================================
# classify()
# =============================================================================


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sends_json_mode_completion(self) -> None:
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(
                200,
                json=_completion('{"verdict": "block", "confidence": 0.9, "reason": "insults"}'),
            )

        verdict = await _service(handler).classify("you are worthless, get out", "оскорбления")

        assert verdict.verdict == Verdict.BLOCK
        request = captured["request"]
        assert str(request.url) == CLASSIFIER_URL
        assert request.headers["Authorization"] == "Bearer test-key"
        assert "HTTP-Referer" in request.headers
        body = json.loads(request.content)
        assert body["model"] == "google/gemini-2.0-flash-001"
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert body["messages"][1]["role"] == "user"
        assert "you are worthless, get out" in body["messages"][1]["content"]
        assert "оскорбления" in body["messages"][1]["content"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 429, 500, 503])
    async def test_non_success_status_raises(self, status_code) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, text="upstream error")

        with pytest.raises(ClassifierUnavailableError) as exc_info:
            await _service(handler).classify("hello")

        assert exc_info.value.status_code == status_code
        assert str(status_code) in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_raises_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ClassifierUnavailableError, match="timed out"):
            await _service(handler).classify("hello")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_error_raises_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ClassifierUnavailableError):
            await _service(handler).classify("hello")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_makes_single_attempt(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        with pytest.raises(ClassifierUnavailableError):
            await _service(handler).classify("hello")

        assert len(calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_malformed_content_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_completion("I think this is fine."))

        verdict = await _service(handler).classify("hello")

        assert verdict.verdict == Verdict.SAFE
        assert verdict.confidence == 0.5

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{}, {"choices": []}, {"choices": [{"message": {}}]}, {"choices": [{"message": {"content": None}}]}],
    )
    async def test_malformed_envelope_falls_back(self, payload) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        verdict = await _service(handler).classify("hello")

        assert verdict.verdict == Verdict.SAFE
        assert verdict.reason == "could not analyze"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_json_envelope_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        verdict = await _service(handler).classify("hello")

        assert verdict.verdict == Verdict.SAFE

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_api_key_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
            raise AssertionError("classifier must not be called")

        with pytest.raises(ClassifierNotConfiguredError):
            await _service(handler, api_key="").classify("hello")


class TestIsConfigured:
    @pytest.mark.unit
    def test_configured_with_key(self) -> None:
        assert ClassifierService(api_key="key").is_configured is True

    @pytest.mark.unit
    def test_not_configured_without_key(self) -> None:
        assert ClassifierService(api_key="  ").is_configured is False
