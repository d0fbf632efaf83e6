"""
Celery tasks for block enforcement reconciliation.

The report insert and the two block writes are not one transaction. When
enforcement fails after a report is recorded as auto_blocked, these tasks
converge the block ledger and the profile flag:
- enforce_block: retry queued by the request that failed (with backoff)
- reconcile_blocks: periodic sweep for auto_blocked reports left unenforced
"""

import logging

from app.core.celery_app import celery_app
from app.core.constants import (
    ENFORCEMENT_MAX_RETRIES,
    ENFORCEMENT_RETRY_DELAY_SECONDS,
    RECONCILE_BATCH_SIZE,
)
from app.core.database import get_supabase
from app.models.moderation import EnforcementResult
from app.services.block_service import BlockService
from app.services.report_service import ReportService

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=ENFORCEMENT_MAX_RETRIES,
    default_retry_delay=ENFORCEMENT_RETRY_DELAY_SECONDS,
)
def enforce_block(self, user_id: str, reason: str, report_id: str) -> dict:
    """
    Re-run block enforcement for one user.

    Idempotent: an existing block record only gets its profile flag repaired.

    Returns:
        Dict with the enforcement result
    """
    blocks = BlockService(supabase=get_supabase())

    try:
        if blocks.repair_profile_flag(user_id):
            return {"user_id": user_id, "result": "repaired"}

        result = blocks.enforce(user_id, reason, report_id)
        logger.info(
            "Enforcement retry succeeded: user=%s report=%s result=%s",
            user_id,
            report_id,
            result.value,
            extra={"stage": "reconcile", "reported_user_id": user_id, "report_id": report_id},
        )
        return {"user_id": user_id, "result": result.value}

    except Exception as e:
        logger.error(
            "Enforcement retry failed (attempt %d): user=%s report=%s: %s",
            self.request.retries + 1,
            user_id,
            report_id,
            e,
            extra={"stage": "reconcile", "reported_user_id": user_id, "report_id": report_id},
        )
        raise self.retry(exc=e, countdown=ENFORCEMENT_RETRY_DELAY_SECONDS * 2**self.request.retries)


@celery_app.task
def reconcile_blocks(batch_size: int = RECONCILE_BATCH_SIZE) -> dict:
    """
    Finish enforcement for auto_blocked reports whose user is not flagged.

    Runs every 10 minutes via Celery beat. Failures for one user are logged
    and left for the next sweep.

    Returns:
        Dict with counts of repaired, enforced and failed users
    """
    supabase = get_supabase()
    reports = ReportService(supabase=supabase)
    blocks = BlockService(supabase=supabase)

    pending = reports.list_unenforced_auto_blocks(limit=batch_size)
    repaired = enforced = failed = 0

    for report in pending:
        user_id = report.reported_user_id
        try:
            if blocks.repair_profile_flag(user_id):
                repaired += 1
                continue
            reason = f"{report.ai_verdict.value} verdict (confidence {report.ai_confidence:.2f})"
            if blocks.enforce(user_id, reason, report.id) == EnforcementResult.OK:
                enforced += 1
        except Exception:
            failed += 1
            logger.exception(
                "Reconciliation failed: user=%s report=%s",
                user_id,
                report.id,
                extra={"stage": "reconcile", "reported_user_id": user_id, "report_id": report.id},
            )

    if pending:
        logger.info(
            "Block reconciliation: %d candidates, %d repaired, %d enforced, %d failed",
            len(pending),
            repaired,
            enforced,
            failed,
        )
    return {"repaired": repaired, "enforced": enforced, "failed": failed}
