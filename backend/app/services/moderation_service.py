"""
Moderation pipeline for user reports.

One linear pass per report:
    already-blocked check -> evidence -> classifier -> decision
    -> report ledger (always) -> block enforcement (conditional)

No report is written when there is no evidence or the classifier is
unavailable. A failed enforcement after the report is recorded is logged
and handed to the reconciliation task; the report itself is never rolled back.
"""

import logging
from typing import Optional

from app.core.posthog import capture
from app.models.moderation import (
    AlreadyBlockedError,
    EnforcementResult,
    ModerateResponse,
    SelfReportError,
)
from app.services.block_service import BlockService
from app.services.classifier_service import ClassifierService
from app.services.evidence_service import EvidenceService
from app.services.moderation_policy import decide
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)


class ModerationService:
    """Service that runs a report through the moderation pipeline."""

    def __init__(
        self,
        evidence_service: Optional[EvidenceService] = None,
        classifier_service: Optional[ClassifierService] = None,
        report_service: Optional[ReportService] = None,
        block_service: Optional[BlockService] = None,
    ) -> None:
        self.evidence = evidence_service or EvidenceService()
        self.classifier = classifier_service or ClassifierService()
        self.reports = report_service or ReportService()
        self.blocks = block_service or BlockService()

    async def moderate(
        self,
        reporter_id: str,
        reported_user_id: str,
        chat_id: str,
        reason: Optional[str] = None,
        message_id: Optional[str] = None,
    ) -> ModerateResponse:
        """
        Moderate one report and return the verdict.

        Raises:
            SelfReportError: reporter_id == reported_user_id.
            AlreadyBlockedError: Target already has a block record.
            NoEvidenceError: Nothing to judge.
            ClassifierUnavailableError: Classifier call failed.
            ReportPersistenceError: Report insert failed.
        """
        context = {"reporter_id": reporter_id, "reported_user_id": reported_user_id, "chat_id": chat_id}

        if reporter_id == reported_user_id:
            raise SelfReportError("Cannot report yourself")

        if self.blocks.is_blocked(reported_user_id):
            logger.info(
                "Report skipped, target already blocked: reported=%s chat=%s",
                reported_user_id,
                chat_id,
                extra={**context, "stage": "precheck"},
            )
            raise AlreadyBlockedError(reported_user_id)

        evidence = self.evidence.gather(chat_id, reported_user_id, message_id)
        logger.info(
            "Moderating %d message(s): reported=%s chat=%s",
            len(evidence.items),
            reported_user_id,
            chat_id,
            extra={**context, "stage": "evidence"},
        )

        verdict = await self.classifier.classify(evidence.as_prompt_text(), reason)
        decision = decide(verdict)

        report = self.reports.record(
            reporter_id=reporter_id,
            reported_user_id=reported_user_id,
            chat_id=chat_id,
            message_id=evidence.anchor_message_id,
            reason=reason,
            verdict=verdict,
            decision=decision,
        )

        if decision.should_block:
            self._enforce(reported_user_id, verdict.reason, report.id, chat_id)

        capture(
            user_id=reporter_id,
            event="report_moderated",
            properties={
                "report_id": report.id,
                "verdict": verdict.verdict.value,
                "confidence": verdict.confidence,
                "blocked": decision.should_block,
                "evidence_count": len(evidence.items),
            },
        )

        return ModerateResponse(
            success=True,
            verdict=verdict.verdict,
            confidence=verdict.confidence,
            reason=verdict.reason,
            blocked=decision.should_block,
        )

    def _enforce(self, user_id: str, reason: str, report_id: str, chat_id: str) -> None:
        extra = {"stage": "enforce", "reported_user_id": user_id, "report_id": report_id, "chat_id": chat_id}
        try:
            result = self.blocks.enforce(user_id, reason, report_id)
        except Exception:
            logger.exception(
                "Block enforcement failed, queueing retry: user=%s report=%s",
                user_id,
                report_id,
                extra=extra,
            )
            self._queue_enforcement_retry(user_id, reason, report_id)
            return

        if result == EnforcementResult.ALREADY_BLOCKED:
            logger.info("Target was blocked concurrently: user=%s", user_id, extra=extra)
            return

        capture(
            user_id=user_id,
            event="user_auto_blocked",
            properties={"report_id": report_id, "chat_id": chat_id},
        )

    def _queue_enforcement_retry(self, user_id: str, reason: str, report_id: str) -> None:
        # Import here to avoid circular imports
        from app.tasks.moderation_tasks import enforce_block

        try:
            enforce_block.delay(user_id, reason, report_id)
        except Exception:
            # Periodic reconciliation still picks the report up
            logger.exception(
                "Could not queue enforcement retry: user=%s report=%s",
                user_id,
                report_id,
                extra={"stage": "enforce", "reported_user_id": user_id, "report_id": report_id},
            )
