from typing import Dict, Any
import logging

from contentauth.services.history_service import HistoryService, DEFAULT_ACTIVITY_LIMIT
from contentauth.utilities.format import serialize_document

logger = logging.getLogger(__name__)


class HistoryHandler:
    """
    Handler for history, activity feed and statistics requests.
    """

    def __init__(self, history_service: HistoryService):
        """
        Initialize with the history service.

        Args:
            history_service: Service projecting history from content records
        """
        self.history_service = history_service

    async def get_history(self, address: str) -> Dict[str, Any]:
        """
        Get the history of one content record.

        Args:
            address: The content address, case-insensitive

        Returns:
            History document with datetimes rendered as ISO strings
        """
        history = await self.history_service.history_for(address.strip().lower())
        return serialize_document(history)

    async def get_activity(self, limit: int = DEFAULT_ACTIVITY_LIMIT) -> Dict[str, Any]:
        activities = await self.history_service.activity_feed(limit)
        return {
            "activities": [serialize_document(event) for event in activities],
            "total": len(activities),
        }

    async def get_stats(self) -> Dict[str, Any]:
        stats = await self.history_service.stats()
        return {"overview": stats}
