from fastapi import APIRouter, Depends, Query
import logging

from contentauth.api.dependencies import get_history_handler
from contentauth.handlers.history_handler import HistoryHandler
from contentauth.schemas.history_schema import ActivityFeedResponse, StatsResponse
from contentauth.services.history_service import DEFAULT_ACTIVITY_LIMIT

router = APIRouter(
    tags=["Activity"],
)

logger = logging.getLogger(__name__)


@router.get("/activity", response_model=ActivityFeedResponse)
async def get_activity(
    limit: int = Query(DEFAULT_ACTIVITY_LIMIT, description="Maximum number of events, 1 to 500"),
    history_handler: HistoryHandler = Depends(get_history_handler)
) -> ActivityFeedResponse:
    """Recent mint, transfer, verification and download events across all content."""
    result = await history_handler.get_activity(limit)
    return ActivityFeedResponse(**result)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    history_handler: HistoryHandler = Depends(get_history_handler)
) -> StatsResponse:
    """Platform-wide content and event counts."""
    result = await history_handler.get_stats()
    return StatsResponse(**result)
