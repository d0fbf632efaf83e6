"""
Evidence gathering for user reports.

Reads the messages to be judged:
- a single explicitly reported message, or
- the most recent messages the reported user sent in the chat.

Read-only; the evidence set is never persisted.
"""

import logging
from typing import Any, Optional

from supabase import Client

from app.core.constants import EVIDENCE_MESSAGE_LIMIT
from app.core.database import get_supabase
from app.models.moderation import EvidenceItem, EvidenceSet, NoEvidenceError

logger = logging.getLogger(__name__)


class EvidenceService:
    """Service that builds the evidence set for a report."""

    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def gather(
        self,
        chat_id: str,
        reported_user_id: str,
        message_id: Optional[str] = None,
        limit: int = EVIDENCE_MESSAGE_LIMIT,
    ) -> EvidenceSet:
        """
        Collect messages authored by reported_user_id in chat_id, newest first.

        Raises:
            NoEvidenceError: No non-empty message qualifies.
        """
        if message_id:
            rows = self._fetch_single(chat_id, reported_user_id, message_id)
        else:
            rows = self._fetch_recent(chat_id, reported_user_id, limit)

        items = [
            EvidenceItem(
                message_id=row["id"],
                content=row["content"],
                created_at=row.get("created_at"),
            )
            for row in rows
            if (row.get("content") or "").strip()
        ]

        if not items:
            logger.info(
                "No evidence: reported=%s chat=%s message=%s",
                reported_user_id,
                chat_id,
                message_id,
                extra={"stage": "evidence", "reported_user_id": reported_user_id, "chat_id": chat_id},
            )
            raise NoEvidenceError(f"No messages from {reported_user_id} in chat {chat_id}")

        return EvidenceSet(items=items)

    def _fetch_single(
        self, chat_id: str, reported_user_id: str, message_id: str
    ) -> list[dict[str, Any]]:
        result = (
            self.supabase.table("messages")
            .select("id, content, created_at")
            .eq("id", message_id)
            .eq("chat_id", chat_id)
            .eq("sender_id", reported_user_id)
            .limit(1)
            .execute()
        )
        return result.data or []

    def _fetch_recent(
        self, chat_id: str, reported_user_id: str, limit: int
    ) -> list[dict[str, Any]]:
        result = (
            self.supabase.table("messages")
            .select("id, content, created_at")
            .eq("chat_id", chat_id)
            .eq("sender_id", reported_user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data or []
