from typing import Dict, Any, Optional, Tuple
import logging

from contentauth.services.content_service import ContentService
from contentauth.utilities.format import serialize_document

logger = logging.getLogger(__name__)


class MediaHandler:
    """
    Handler for reading, transferring and downloading single content records.
    """

    def __init__(self, content_service: ContentService):
        self.content_service = content_service

    async def list_media(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        result = await self.content_service.list_records(page=page, limit=limit)
        return {
            "data": [serialize_document(record) for record in result["data"]],
            "pagination": result["pagination"],
        }

    async def get_media(self, address: str) -> Dict[str, Any]:
        record = await self.content_service.get_record(address)
        return serialize_document(record)

    async def transfer(
        self,
        address: str,
        from_owner: str,
        to_owner: str,
        proof: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Transfer recorded ownership and summarize the result.

        Returns:
            Dict with the new ownership and the updated record
        """
        record = await self.content_service.transfer(address, from_owner, to_owner, proof)
        logger.info(f"Ownership of {record['contentAddress']} transferred from {from_owner} to {to_owner}")
        return {
            "success": True,
            "message": "Ownership transferred successfully",
            "contentAddress": record["contentAddress"],
            "from": from_owner,
            "to": to_owner,
            "currentOwner": record["currentOwner"],
            "record": serialize_document(record),
        }

    async def download(
        self,
        address: str,
        requester_identity: Optional[str] = None,
        requester_context: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, Any], bytes]:
        """Fetch the content bytes of a record, recording the download."""
        return await self.content_service.download(address, requester_identity, requester_context)
