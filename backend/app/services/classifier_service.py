"""
AI classifier client for reported messages.

Sends evidence + report reason to an OpenRouter chat-completions model and
decodes a structured verdict. A single attempt per request: transport
failures surface as ClassifierUnavailableError, while an unreadable reply
degrades to a conservative "safe" fallback so the report is still recorded.
"""

import json
import logging
import re
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from app.core.config import get_settings
from app.core.constants import FALLBACK_CONFIDENCE, FALLBACK_REASON, UNSPECIFIED_REASON
from app.models.moderation import (
    ClassifierNotConfiguredError,
    ClassifierUnavailableError,
    ClassifierVerdict,
    Verdict,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a content moderator for a private messenger. Analyze the reported message(s) and decide whether they break the rules.
Rules:
1. Insults, threats and discrimination are forbidden
2. Spam and fraud are forbidden
3. Adult content is forbidden
4. Advertising without the recipient's consent is forbidden

Respond with a JSON object only:
{
  "verdict": "block" or "warn" or "safe",
  "confidence": number from 0 to 1,
  "reason": "short explanation"
}"""

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

_KNOWN_VERDICTS = {v.value for v in Verdict}


def fallback_verdict() -> ClassifierVerdict:
    """Verdict used when the model reply cannot be decoded."""
    return ClassifierVerdict(
        verdict=Verdict.SAFE, confidence=FALLBACK_CONFIDENCE, reason=FALLBACK_REASON
    )


def build_user_message(evidence_text: str, report_reason: Optional[str]) -> str:
    """Evidence and the reporter's reason, both verbatim."""
    reason = report_reason if report_reason and report_reason.strip() else UNSPECIFIED_REASON
    return f'Message(s):\n"{evidence_text}"\n\nReporter\'s reason: {reason}'


def parse_verdict(content: Optional[str]) -> ClassifierVerdict:
    """
    Decode the model reply into a verdict.

    Never raises: malformed JSON, missing fields, out-of-range confidence
    and unknown verdict strings all map to fallback_verdict().
    """
    if not content or not content.strip():
        logger.warning("Classifier reply is empty, using fallback verdict")
        return fallback_verdict()

    text = _CODE_FENCE_RE.sub("", content.strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Classifier reply is not valid JSON (%s): %.200s", e, content)
        return fallback_verdict()

    if not isinstance(data, dict):
        logger.warning("Classifier reply is not a JSON object: %.200s", content)
        return fallback_verdict()

    raw_verdict = data.get("verdict")
    if isinstance(raw_verdict, str) and raw_verdict.strip().lower() not in _KNOWN_VERDICTS:
        logger.warning("Classifier returned unknown verdict %r, treating as safe", raw_verdict)
        return fallback_verdict()

    try:
        return ClassifierVerdict.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "Classifier reply failed validation (%d errors): %.200s", e.error_count(), content
        )
        return fallback_verdict()


class ClassifierService:
    """Client for the external text-classification model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.model = model or settings.classifier_model
        self.url = url or settings.classifier_url
        self.referer = settings.classifier_referer
        self.timeout = timeout or settings.classifier_timeout_seconds
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _build_payload(self, evidence_text: str, report_reason: Optional[str]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_message(evidence_text, report_reason)},
            ],
            "response_format": {"type": "json_object"},
        }

    async def classify(
        self, evidence_text: str, report_reason: Optional[str] = None
    ) -> ClassifierVerdict:
        """
        Classify evidence text in one synchronous round trip.

        Raises:
            ClassifierNotConfiguredError: No API key.
            ClassifierUnavailableError: Timeout, transport error, or non-2xx status.
        """
        if not self.is_configured:
            raise ClassifierNotConfiguredError("OPENROUTER_API_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
        }
        payload = self._build_payload(evidence_text, report_reason)

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.url, headers=headers, json=payload, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            logger.error("Classifier timed out after %.1fs: %s", self.timeout, e)
            raise ClassifierUnavailableError(
                f"Classifier timed out after {self.timeout:.0f}s"
            ) from e
        except httpx.HTTPError as e:
            logger.error("Classifier request failed: %s", e)
            raise ClassifierUnavailableError(f"Classifier request failed: {e}") from e

        if not response.is_success:
            logger.error("Classifier error: %s %.500s", response.status_code, response.text)
            raise ClassifierUnavailableError(
                f"Classifier error: {response.status_code}", status_code=response.status_code
            )

        content = self._extract_content(response)
        logger.debug("Classifier reply: %.500s", content)
        return parse_verdict(content)

    @staticmethod
    def _extract_content(response: httpx.Response) -> Optional[str]:
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Classifier envelope is malformed: %s", e)
            return None
        return content if isinstance(content, str) else None
