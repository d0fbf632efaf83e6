"""
Report ledger for moderation requests.

Every request that reaches the classifier is recorded exactly once,
whatever the verdict. Verdict fields are written at insert time and never
updated here; resolving a report belongs to human-review tooling.
"""

import logging
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from app.core.constants import RECONCILE_BATCH_SIZE, RECONCILE_PAGE_SIZE
from app.core.database import get_supabase
from app.models.moderation import (
    ClassifierVerdict,
    ModerationDecision,
    Report,
    ReportPersistenceError,
    ReportStatus,
)

logger = logging.getLogger(__name__)

REPORT_COLUMNS = (
    "id, reporter_id, reported_user_id, chat_id, message_id, reason, "
    "ai_verdict, ai_confidence, status, created_at, resolved_at"
)


class ReportService:
    """Service for the reports table."""

    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def record(
        self,
        reporter_id: str,
        reported_user_id: str,
        chat_id: str,
        message_id: str,
        reason: Optional[str],
        verdict: ClassifierVerdict,
        decision: ModerationDecision,
    ) -> Report:
        """
        Insert one report row with the verdict and decided status.

        Raises:
            ReportPersistenceError: The insert failed or returned no row.
        """
        row: dict[str, Any] = {
            "reporter_id": reporter_id,
            "reported_user_id": reported_user_id,
            "chat_id": chat_id,
            "message_id": message_id,
            "reason": reason,
            "ai_verdict": verdict.verdict.value,
            "ai_confidence": verdict.confidence,
            "status": decision.status.value,
        }
        try:
            result = self.supabase.table("reports").insert(row).execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(
                "Failed to save report: reported=%s chat=%s: %s",
                reported_user_id,
                chat_id,
                e,
                extra={"stage": "record", "reported_user_id": reported_user_id, "chat_id": chat_id},
            )
            raise ReportPersistenceError(f"Failed to save report: {e}") from e

        if not result.data:
            raise ReportPersistenceError("Report insert returned no row")

        report = Report(**result.data[0])
        logger.info(
            "Report recorded: id=%s reported=%s verdict=%s confidence=%.2f status=%s",
            report.id,
            reported_user_id,
            report.ai_verdict.value,
            report.ai_confidence,
            report.status.value,
            extra={"stage": "record", "report_id": report.id, "chat_id": chat_id},
        )
        return report

    def list_unenforced_auto_blocks(
        self, limit: int = RECONCILE_BATCH_SIZE, page_size: int = RECONCILE_PAGE_SIZE
    ) -> list[Report]:
        """
        Latest auto_blocked report per user whose profile flag is still false.

        Pages through auto_blocked reports newest first until `limit`
        candidates are found or the reports run out, so an old failed
        enforcement is found behind any number of enforced ones.
        """
        candidates: list[Report] = []
        seen_users: set[str] = set()
        offset = 0

        while len(candidates) < limit:
            rows = self._auto_blocked_page(offset, page_size)
            page_latest: dict[str, Report] = {}
            for row in rows:
                report = Report(**row)
                if report.reported_user_id not in seen_users:
                    page_latest.setdefault(report.reported_user_id, report)
            seen_users.update(page_latest)

            flagged = self._flagged_user_ids(list(page_latest))
            candidates.extend(r for user_id, r in page_latest.items() if user_id not in flagged)

            if len(rows) < page_size:
                break
            offset += page_size

        return candidates[:limit]

    def _auto_blocked_page(self, offset: int, page_size: int) -> list[dict[str, Any]]:
        result = (
            self.supabase.table("reports")
            .select(REPORT_COLUMNS)
            .eq("status", ReportStatus.AUTO_BLOCKED.value)
            .order("created_at", desc=True)
            .range(offset, offset + page_size - 1)
            .execute()
        )
        return result.data or []

    def _flagged_user_ids(self, user_ids: list[str]) -> set[str]:
        if not user_ids:
            return set()
        result = (
            self.supabase.table("profiles")
            .select("id, is_blocked")
            .in_("id", user_ids)
            .execute()
        )
        return {p["id"] for p in result.data or [] if p.get("is_blocked")}
