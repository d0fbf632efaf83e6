"""
Block enforcement for auto-moderated users.

Handles:
- Idempotent block: upsert into blocked_users (unique user_id) + profile flag
- Block status lookups (always read at decision time, never cached)
- Profile flag repair for blocks whose second write failed
"""

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.database import get_supabase
from app.models.moderation import BlockRecord, BlockStatusResponse, EnforcementResult

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _is_duplicate_key(error: APIError) -> bool:
    return error.code == UNIQUE_VIOLATION or "duplicate" in (error.message or "").lower()


class BlockService:
    """Service that owns blocked_users and profiles.is_blocked."""

    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def get_block_record(self, user_id: str) -> Optional[BlockRecord]:
        result = (
            self.supabase.table("blocked_users")
            .select("id, user_id, reason, report_id, blocked_at")
            .eq("user_id", user_id)
            .order("blocked_at", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return BlockRecord(**result.data[0])

    def is_blocked(self, user_id: str) -> bool:
        """True if a block record exists for the user."""
        return self.get_block_record(user_id) is not None

    def enforce(self, user_id: str, reason: str, report_id: Optional[str]) -> EnforcementResult:
        """
        Block a user: upsert the block record, then flip profiles.is_blocked.

        Returns ALREADY_BLOCKED without writing when a record exists. A
        duplicate-key error from a concurrent request counts as success.
        The two writes are not transactional; callers reconcile on failure.
        """
        if self.is_blocked(user_id):
            logger.info("User already blocked, skipping enforcement: user=%s", user_id)
            return EnforcementResult.ALREADY_BLOCKED

        row: dict[str, Any] = {"user_id": user_id, "reason": reason, "report_id": report_id}
        try:
            self.supabase.table("blocked_users").upsert(row, on_conflict="user_id").execute()
        except APIError as e:
            if not _is_duplicate_key(e):
                raise
            logger.info("Concurrent block for user=%s already landed", user_id)

        self._set_profile_flag(user_id)
        logger.info(
            "User blocked: user=%s report=%s",
            user_id,
            report_id,
            extra={"stage": "enforce", "reported_user_id": user_id, "report_id": report_id},
        )
        return EnforcementResult.OK

    def repair_profile_flag(self, user_id: str) -> bool:
        """
        Set profiles.is_blocked for a user that has a block record.

        Returns False (no write) when the user has no block record.
        """
        if not self.is_blocked(user_id):
            return False
        self._set_profile_flag(user_id)
        logger.info("Repaired profile block flag: user=%s", user_id)
        return True

    def get_block_status(self, user_id: str) -> BlockStatusResponse:
        """Profile flag plus the latest block reason, as shown to a blocked user."""
        profile = (
            self.supabase.table("profiles")
            .select("is_blocked")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        flagged = bool(profile.data and profile.data[0].get("is_blocked"))
        record = self.get_block_record(user_id)
        return BlockStatusResponse(
            user_id=user_id,
            is_blocked=flagged or record is not None,
            reason=record.reason if record else None,
            blocked_at=record.blocked_at if record else None,
        )

    def _set_profile_flag(self, user_id: str) -> None:
        self.supabase.table("profiles").update({"is_blocked": True}).eq("id", user_id).execute()
