"""Shared pytest fixtures for test suite."""

import os

# Settings validate required secrets at import time; provide test values
# before any app module is imported.
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("OPENROUTER_API_KEY", "test-openrouter-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("POSTHOG_ENABLED", "false")

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi import Request  # noqa: E402

from app.models.moderation import (  # noqa: E402
    ClassifierVerdict,
    EvidenceItem,
    EvidenceSet,
    Report,
    ReportStatus,
    Verdict,
)

# =============================================================================
# Mock Request Fixtures
# =============================================================================


@pytest.fixture
def mock_request():
    """Create a mock FastAPI Request object."""
    request = MagicMock(spec=Request)
    request.state = MagicMock()
    request.headers = {}
    return request


# =============================================================================
# Mock Supabase Client
# =============================================================================


@pytest.fixture
def mock_supabase():
    """Create a mock Supabase client for database operations."""
    return MagicMock()


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def block_verdict() -> ClassifierVerdict:
    return ClassifierVerdict(verdict=Verdict.BLOCK, confidence=0.9, reason="insults")


@pytest.fixture
def safe_verdict() -> ClassifierVerdict:
    return ClassifierVerdict(verdict=Verdict.SAFE, confidence=0.95, reason="friendly greeting")


@pytest.fixture
def single_evidence() -> EvidenceSet:
    return EvidenceSet(
        items=[EvidenceItem(message_id="msg-1", content="you are worthless, get out")]
    )


@pytest.fixture
def make_report():
    """Factory for Report objects as returned by the ledger."""

    def _make(
        status: ReportStatus = ReportStatus.PENDING,
        verdict: Verdict = Verdict.SAFE,
        confidence: float = 0.95,
        report_id: str = "report-1",
        reported_user_id: str = "user-bad",
    ) -> Report:
        return Report(
            id=report_id,
            reporter_id="user-reporter",
            reported_user_id=reported_user_id,
            chat_id="chat-1",
            message_id="msg-1",
            reason="оскорбления",
            ai_verdict=verdict,
            ai_confidence=confidence,
            status=status,
            created_at="2026-10-18T12:00:00+00:00",
        )

    return _make


# =============================================================================
# Settings Override Fixture
# =============================================================================


@pytest.fixture
def mock_settings():
    """Mock settings for testing."""
    settings = MagicMock()
    settings.supabase_url = "https://test-project.supabase.co"
    settings.openrouter_api_key = "test-openrouter-key"
    settings.classifier_url = "https://openrouter.test/api/v1/chat/completions"
    settings.classifier_model = "google/gemini-2.0-flash-001"
    settings.classifier_referer = "https://chat.test"
    settings.classifier_timeout_seconds = 20.0
    return settings
