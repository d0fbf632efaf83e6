"""Business logic services for the moderation API."""

from app.services.block_service import BlockService
from app.services.classifier_service import ClassifierService
from app.services.evidence_service import EvidenceService
from app.services.moderation_service import ModerationService
from app.services.report_service import ReportService

__all__ = [
    "BlockService",
    "ClassifierService",
    "EvidenceService",
    "ModerationService",
    "ReportService",
]
