"""Decision policy: maps a classifier verdict to a moderation action."""

from app.core.constants import BLOCK_CONFIDENCE_THRESHOLD, WARN_BLOCK_CONFIDENCE_THRESHOLD
from app.models.moderation import ClassifierVerdict, ModerationDecision, ReportStatus, Verdict

BLOCK_THRESHOLDS: dict[Verdict, float] = {
    Verdict.BLOCK: BLOCK_CONFIDENCE_THRESHOLD,
    Verdict.WARN: WARN_BLOCK_CONFIDENCE_THRESHOLD,
}


def should_block(verdict: ClassifierVerdict) -> bool:
    threshold = BLOCK_THRESHOLDS.get(verdict.verdict)
    if threshold is None:
        return False
    return verdict.confidence >= threshold


def decide(verdict: ClassifierVerdict) -> ModerationDecision:
    """
    Decide whether a verdict auto-blocks the reported user.

    - block, confidence >= 0.70 -> auto_blocked
    - warn, confidence >= 0.75 -> auto_blocked
    - anything else -> pending (human follow-up)
    """
    block = should_block(verdict)
    return ModerationDecision(
        should_block=block,
        status=ReportStatus.AUTO_BLOCKED if block else ReportStatus.PENDING,
    )
