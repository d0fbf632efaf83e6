"""PostHog analytics client for server-side moderation events.

Fire-and-forget pattern: analytics failures never break the pipeline.
Uses the profile id as distinct_id.
"""

import logging
from typing import Optional

import posthog as _posthog

from app.core.config import get_settings

logger = logging.getLogger(__name__)

_initialized = False


def init_posthog() -> None:
    """Initialize PostHog client. Call once at app startup."""
    global _initialized
    settings = get_settings()

    if not settings.posthog_enabled or not settings.posthog_api_key:
        logger.info("PostHog disabled (no API key or posthog_enabled=False)")
        return

    _posthog.api_key = settings.posthog_api_key
    _posthog.host = settings.posthog_host
    _posthog.debug = settings.debug
    _initialized = True
    logger.info("PostHog initialized (host=%s)", settings.posthog_host)


def shutdown_posthog() -> None:
    """Flush pending events and shut down. Call at app shutdown."""
    if _initialized:
        _posthog.flush()
        _posthog.shutdown()
        logger.info("PostHog shut down")


def capture(user_id: str, event: str, properties: Optional[dict] = None) -> None:
    """Track an event in PostHog (fire-and-forget).

    Args:
        user_id: Profile id (UUID string) used as distinct_id.
        event: Event name in noun_verb format (e.g., "report_moderated").
        properties: Event properties dict.
    """
    if not _initialized:
        return

    try:
        _posthog.capture(
            distinct_id=user_id,
            event=event,
            properties=dict(properties) if properties else {},
        )
    except Exception as e:
        logger.warning("PostHog capture failed for '%s': %s", event, e)
