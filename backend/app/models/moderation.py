"""
Report moderation models.

Pipeline: evidence gathering -> AI verdict -> decision policy ->
report ledger (always) + block enforcement (conditional).
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.constants import REPORT_REASON_MAX_LENGTH

# ===========================================
# Enums
# ===========================================


class Verdict(str, Enum):
    """Categorical judgment returned by the classifier."""

    SAFE = "safe"
    WARN = "warn"
    BLOCK = "block"


class ReportStatus(str, Enum):
    """Report status at insert time."""

    PENDING = "pending"  # Left for human follow-up
    AUTO_BLOCKED = "auto_blocked"


class EnforcementResult(str, Enum):
    """Outcome of a block enforcement attempt."""

    OK = "ok"
    ALREADY_BLOCKED = "already_blocked"


# ===========================================
# Domain Models
# ===========================================


class ClassifierVerdict(BaseModel):
    """Structured verdict decoded from the model reply."""

    verdict: Verdict
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str

    @field_validator("verdict", mode="before")
    @classmethod
    def normalize_verdict(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class EvidenceItem(BaseModel):
    """One message authored by the reported user."""

    message_id: str
    content: str
    created_at: Optional[datetime] = None


class EvidenceSet(BaseModel):
    """Messages to classify, newest first. Never persisted."""

    items: list[EvidenceItem]

    @property
    def anchor_message_id(self) -> str:
        """The newest message; stored on the report as its evidence anchor."""
        return self.items[0].message_id

    def as_prompt_text(self) -> str:
        if len(self.items) == 1:
            return self.items[0].content
        return "\n".join(f"{i}. {item.content}" for i, item in enumerate(self.items, start=1))


class ModerationDecision(BaseModel):
    """Action chosen by the decision policy."""

    should_block: bool
    status: ReportStatus


class Report(BaseModel):
    """Audit record of one moderation request (row in reports)."""

    id: str
    reporter_id: str
    reported_user_id: str
    chat_id: str
    message_id: str
    reason: Optional[str] = None
    ai_verdict: Verdict
    ai_confidence: float
    status: ReportStatus
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class BlockRecord(BaseModel):
    """Durable record that a user has been sanctioned (row in blocked_users)."""

    id: Optional[str] = None
    user_id: str
    reason: Optional[str] = None
    report_id: Optional[str] = None
    blocked_at: Optional[datetime] = None


# ===========================================
# Request Models
# ===========================================


class ModerateRequest(BaseModel):
    """Report submitted from the chat client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reporter_id: str = Field(..., min_length=1)
    reported_user_id: str = Field(..., min_length=1)
    chat_id: str = Field(..., min_length=1)
    reason: Optional[str] = Field(None, max_length=REPORT_REASON_MAX_LENGTH)
    message_id: Optional[str] = None


# ===========================================
# Response Models
# ===========================================


class ModerateResponse(BaseModel):
    """Verdict returned to the reporter."""

    success: bool = True
    verdict: Verdict
    confidence: float
    reason: str
    blocked: bool


class BlockStatusResponse(BaseModel):
    """Block status shown on the blocked-user screen."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    is_blocked: bool
    reason: Optional[str] = None
    blocked_at: Optional[datetime] = None


# ===========================================
# Exception Classes
# ===========================================


class ModerationError(Exception):
    """Base exception for moderation errors."""

    pass


class SelfReportError(ModerationError):
    """Cannot report yourself."""

    pass


class NoEvidenceError(ModerationError):
    """The reported user has no messages to judge in this chat."""

    pass


class AlreadyBlockedError(ModerationError):
    """Target user already has a block record."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} is already blocked")


class ClassifierNotConfiguredError(ModerationError):
    """Classifier API key is missing."""

    pass


class ClassifierUnavailableError(ModerationError):
    """Classifier returned a non-success status, timed out, or was unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ReportPersistenceError(ModerationError):
    """The report row could not be written."""

    pass
