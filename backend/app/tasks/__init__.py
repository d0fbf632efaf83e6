"""Background tasks for the moderation service."""

from app.tasks.moderation_tasks import enforce_block, reconcile_blocks

__all__ = ["enforce_block", "reconcile_blocks"]
