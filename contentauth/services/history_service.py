from typing import Dict, Any, List
import logging

from contentauth.errors import NotFoundError
from contentauth.repositories.content_repo import ContentRepository

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_LIMIT = 50
MAX_ACTIVITY_LIMIT = 500


class HistoryService:
    """
    Read-side projections over the history kept on content records:
    per-record timelines, the cross-record activity feed and statistics.
    """

    def __init__(self, content_repository: ContentRepository):
        """
        Initialize with repository.

        Args:
            content_repository: Repository for content record access
        """
        self.content_repository = content_repository

    @staticmethod
    def mint_event(record: Dict[str, Any]) -> Dict[str, Any]:
        """Build the mint event implied by a record's creation."""
        return {
            "kind": "mint",
            "contentAddress": record["contentAddress"],
            "timestamp": record["createdAt"],
            "to": record.get("registeredBy"),
        }

    def timeline_for(self, record: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Merge the mint event and every history entry of a record.

        Returns:
            Events sorted by timestamp, newest first
        """
        address = record["contentAddress"]
        events = [self.mint_event(record)]

        for entry in record.get("transferHistory", []):
            events.append({"kind": "transfer", "contentAddress": address, **entry})
        for entry in record.get("verificationHistory", []):
            events.append({"kind": "verify", "contentAddress": address, **entry})
        for entry in record.get("downloadHistory", []):
            events.append({"kind": "download", "contentAddress": address, **entry})

        events.sort(key=lambda event: event["timestamp"], reverse=True)
        return events

    async def history_for(self, address: str) -> Dict[str, Any]:
        """
        Get the full history of one content record.

        Args:
            address: The content address of the record

        Returns:
            Dict with a record summary, each history sublist and the merged timeline

        Raises:
            NotFoundError: If no record has this address
        """
        record = await self.content_repository.find_by_address(address)
        if not record:
            raise NotFoundError(f"Content with address {address} not found")

        transfers = record.get("transferHistory", [])
        verifications = record.get("verificationHistory", [])
        downloads = record.get("downloadHistory", [])

        return {
            "contentInfo": {
                "contentAddress": record["contentAddress"],
                "originalName": record.get("originalName"),
                "title": record.get("title"),
                "blobLocator": record.get("blobLocator"),
                "ledgerReceipt": record.get("ledgerReceipt"),
                "mintedAt": record.get("createdAt"),
                "registeredBy": record.get("registeredBy"),
                "currentOwner": record.get("currentOwner"),
                "previousOwners": record.get("previousOwners", []),
                "totalTransfers": len(transfers),
                "totalVerifications": len(verifications),
                "totalDownloads": len(downloads),
            },
            "transferHistory": transfers,
            "verificationHistory": verifications,
            "downloadHistory": downloads,
            "mergedTimeline": self.timeline_for(record),
        }

    async def activity_feed(self, limit: int = DEFAULT_ACTIVITY_LIMIT) -> List[Dict[str, Any]]:
        """
        Get the most recent events across all records.

        Args:
            limit: Maximum number of events, clamped to 1..500

        Returns:
            Events sorted by timestamp, newest first
        """
        limit = max(1, min(limit, MAX_ACTIVITY_LIMIT))
        events = await self.content_repository.find_recent_events(limit)
        events.sort(key=lambda event: event["timestamp"], reverse=True)
        return events[:limit]

    async def stats(self) -> Dict[str, int]:
        """
        Get platform-wide counts of content and events.

        Returns:
            Dict with totals for content, verifications, transfers and downloads
        """
        total_content = await self.content_repository.count_all()
        total_verifications = await self.content_repository.count_by_criteria("verify")
        total_transfers = await self.content_repository.count_by_criteria("transfer")
        total_downloads = await self.content_repository.count_by_criteria("download")

        return {
            "totalContent": total_content,
            "totalVerifications": total_verifications,
            "totalTransfers": total_transfers,
            "totalDownloads": total_downloads,
            "totalActivities": total_verifications + total_transfers + total_downloads,
        }
