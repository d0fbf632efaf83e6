"""Pydantic models for the moderation API."""

from app.models.moderation import (
    AlreadyBlockedError,
    BlockRecord,
    BlockStatusResponse,
    ClassifierNotConfiguredError,
    ClassifierUnavailableError,
    ClassifierVerdict,
    EnforcementResult,
    EvidenceItem,
    EvidenceSet,
    ModerateRequest,
    ModerateResponse,
    ModerationDecision,
    ModerationError,
    NoEvidenceError,
    Report,
    ReportPersistenceError,
    ReportStatus,
    SelfReportError,
    Verdict,
)

__all__ = [
    # Enums
    "EnforcementResult",
    "ReportStatus",
    "Verdict",
    # Domain models
    "BlockRecord",
    "ClassifierVerdict",
    "EvidenceItem",
    "EvidenceSet",
    "ModerationDecision",
    "Report",
    # Request/response models
    "BlockStatusResponse",
    "ModerateRequest",
    "ModerateResponse",
    # Exceptions
    "AlreadyBlockedError",
    "ClassifierNotConfiguredError",
    "ClassifierUnavailableError",
    "ModerationError",
    "NoEvidenceError",
    "ReportPersistenceError",
    "SelfReportError",
]
