"""
Moderation router for user reports.

Endpoints:
- POST /moderate-message: Classify a report and auto-block on a confident verdict
- GET /block-status/{user_id}: Block flag and latest block reason for a user
"""

import logging

from fastapi import APIRouter, Depends, Request

from app.core.constants import MODERATE_RATE_LIMIT
from app.core.rate_limit import limiter
from app.models.moderation import BlockStatusResponse, ModerateRequest, ModerateResponse
from app.services.block_service import BlockService
from app.services.moderation_service import ModerationService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_moderation_service() -> ModerationService:
    return ModerationService()


def get_block_service() -> BlockService:
    return BlockService()


@router.post("/moderate-message", response_model=ModerateResponse)
@limiter.limit(MODERATE_RATE_LIMIT)
async def moderate_message(
    request: Request,
    body: ModerateRequest,
    moderation_service: ModerationService = Depends(get_moderation_service),
) -> ModerateResponse:
    """Run a report through evidence gathering, AI verdict and block decision."""
    logger.info(
        "Report received: reporter=%s reported=%s chat=%s message=%s",
        body.reporter_id,
        body.reported_user_id,
        body.chat_id,
        body.message_id,
    )
    return await moderation_service.moderate(
        reporter_id=body.reporter_id,
        reported_user_id=body.reported_user_id,
        chat_id=body.chat_id,
        reason=body.reason,
        message_id=body.message_id,
    )


@router.get("/block-status/{user_id}", response_model=BlockStatusResponse)
async def get_block_status(
    user_id: str,
    block_service: BlockService = Depends(get_block_service),
) -> BlockStatusResponse:
    """Block flag and reason, as shown on the blocked-user screen."""
    return block_service.get_block_status(user_id)
