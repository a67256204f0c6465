import logging
import math
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple

from contentauth.errors import InvalidInputError, NotFoundError
from contentauth.repositories.content_repo import ContentRepository
from contentauth.services.ipfs_service import IPFSService
from contentauth.utilities.hashing import is_content_address

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class ContentService:
    """
    Service for operations on individual content records:
    listing, lookup, ownership transfer and download.
    """

    def __init__(
        self,
        content_repository: ContentRepository,
        blob_store: Optional[IPFSService] = None,
        unattributed_owner: str = "unattributed"
    ):
        """
        Initialize with repository.

        Args:
            content_repository: Repository for content record access
            blob_store: Optional IPFS blob store holding the content bytes
            unattributed_owner: Identity recorded when the caller is anonymous
        """
        self.content_repository = content_repository
        self.blob_store = blob_store
        self.unattributed_owner = unattributed_owner

    async def list_records(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """
        List content records, newest first.

        Args:
            page: 1-based page number
            limit: Records per page, at most 100

        Returns:
            Dict with the records and pagination details
        """
        if page < 1:
            raise InvalidInputError("page must be at least 1")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        records = await self.content_repository.list_all(page=page, page_size=limit)
        total = await self.content_repository.count_all()

        return {
            "data": records,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            }
        }

    async def get_record(self, address: str) -> Dict[str, Any]:
        """
        Get a content record by address.

        Raises:
            NotFoundError: If no record has this address
        """
        address = self._normalize(address)
        record = await self.content_repository.find_by_address(address)
        if not record:
            raise NotFoundError(f"Content with address {address} not found")
        return record

    async def transfer(
        self,
        address: str,
        from_owner: str,
        to_owner: str,
        proof: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Transfer recorded ownership of a content record.

        Args:
            address: The content address of the record
            from_owner: The owner the caller believes is current
            to_owner: The new owner
            proof: Optional ledger transaction hash backing the transfer

        Returns:
            The updated record

        Raises:
            InvalidInputError: If an owner is blank or both owners are the same
            NotFoundError: If no record has this address
            OwnershipConflictError: If from_owner is not the current owner
        """
        address = self._normalize(address)
        from_owner = (from_owner or "").strip()
        to_owner = (to_owner or "").strip()

        if not from_owner or not to_owner:
            raise InvalidInputError("Both 'from' and 'to' owners are required")
        if from_owner == to_owner:
            raise InvalidInputError("Cannot transfer content to its current owner")

        return await self.content_repository.record_transfer(
            address,
            from_owner,
            to_owner,
            ledger_receipt=proof
        )

    async def download(
        self,
        address: str,
        requester_identity: Optional[str] = None,
        requester_context: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, Any], bytes]:
        """
        Fetch the stored bytes of a record and record the download.

        Returns:
            Tuple of the record and the content bytes

        Raises:
            NotFoundError: If the record or its stored bytes do not exist
            BlobUnavailableError: If the blob store cannot return the bytes
        """
        record = await self.get_record(address)
        address = record["contentAddress"]

        blob_locator = record.get("blobLocator")
        if not blob_locator or self.blob_store is None:
            raise NotFoundError("Content bytes are not available")

        data = await self.blob_store.get(blob_locator)

        entry = {
            "downloadedBy": requester_identity or self.unattributed_owner,
            "timestamp": datetime.now(timezone.utc),
        }
        if requester_context:
            entry["requesterContext"] = requester_context

        updated = await self.content_repository.append_download(address, entry)
        logger.info(f"Download of {address} recorded")
        return updated or record, data

    @staticmethod
    def _normalize(address: str) -> str:
        address = (address or "").strip().lower()
        if not is_content_address(address):
            raise NotFoundError(f"Content with address {address} not found")
        return address
