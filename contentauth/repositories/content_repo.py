from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime, timezone
import logging

from pymongo import ASCENDING, DESCENDING, IndexModel, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from contentauth.errors import NotFoundError, OwnershipConflictError, StorageUnavailableError

logger = logging.getLogger(__name__)

# Sublist holding each appendable event kind
HISTORY_FIELDS = {
    "transfer": "transferHistory",
    "verify": "verificationHistory",
    "download": "downloadHistory",
}


class ContentRepository:
    """
    Repository for content records in MongoDB.
    Holds one document per content address and appends history entries to it.
    """

    def __init__(self, db_client):
        """
        Initialize with MongoDB client.

        Args:
            db_client: The MongoDB client with initialized collections
        """
        self.content_collection = db_client.content_collection

    async def create_indexes(self):
        """Create required indexes for the content collection"""
        indexes = [
            IndexModel([("contentAddress", ASCENDING)], unique=True),
            IndexModel([("createdAt", DESCENDING)]),
            IndexModel([("currentOwner", ASCENDING)]),
        ]
        await self.content_collection.create_indexes(indexes)

    async def find_by_address(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Find a content record by its content address.

        Args:
            address: The content address to look up

        Returns:
            Content record if found, None otherwise
        """
        try:
            record = await self.content_collection.find_one({"contentAddress": address})
            return self._clean(record)

        except PyMongoError as e:
            logger.error(f"Error finding content record: {str(e)}")
            raise StorageUnavailableError("Content store is unavailable") from e

    async def create_if_absent(
        self,
        address: str,
        metadata: Dict[str, Any],
        owner: str
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Insert a record for the address unless one already exists.

        The unique index on contentAddress serializes concurrent inserts: the
        loser gets a DuplicateKeyError and reads back the winner's record.

        Args:
            address: The content address of the uploaded bytes
            metadata: Descriptive metadata (originalName, mimeType, sizeBytes, ...)
            owner: Initial owner of the record

        Returns:
            Tuple of the record and whether this call created it
        """
        now = datetime.now(timezone.utc)
        document = {
            **metadata,
            "contentAddress": address,
            "blobLocator": None,
            "ledgerReceipt": None,
            "registeredBy": owner,
            "currentOwner": owner,
            "previousOwners": [],
            "transferHistory": [],
            "verificationHistory": [],
            "downloadHistory": [],
            "createdAt": now,
            "lastUpdated": now,
        }

        try:
            await self.content_collection.insert_one(document)
            logger.info(f"Content record created for address: {address}")
            return self._clean(document), True

        except DuplicateKeyError:
            logger.info(f"Content address already registered: {address}")
        except PyMongoError as e:
            logger.error(f"Error inserting content record: {str(e)}")
            raise StorageUnavailableError("Content store is unavailable") from e

        existing = await self.find_by_address(address)
        if existing is None:
            raise StorageUnavailableError(f"Record for {address} vanished after duplicate insert")
        return existing, False

    async def attach_external_refs(
        self,
        address: str,
        blob_locator: Optional[str] = None,
        ledger_receipt: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Attach the blob locator and/or ledger receipt to a record.

        Args:
            address: The content address of the record
            blob_locator: IPFS CID of the stored bytes, if stored
            ledger_receipt: Ledger transaction hash, if registered

        Returns:
            Updated record, or None if the record does not exist
        """
        fields = {}
        if blob_locator is not None:
            fields["blobLocator"] = blob_locator
        if ledger_receipt is not None:
            fields["ledgerReceipt"] = ledger_receipt

        if not fields:
            return await self.find_by_address(address)

        fields["lastUpdated"] = datetime.now(timezone.utc)
        return await self._update_one({"contentAddress": address}, {"$set": fields})

    async def append_verification(self, address: str, entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Append a verification entry to a record.

        Returns:
            Updated record, or None if the record does not exist
        """
        return await self._push(address, "verificationHistory", entry)

    async def append_download(self, address: str, entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Append a download entry to a record.

        Returns:
            Updated record, or None if the record does not exist
        """
        return await self._push(address, "downloadHistory", entry)

    async def record_transfer(
        self,
        address: str,
        from_owner: str,
        to_owner: str,
        ledger_receipt: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Move ownership of a record from one owner to another.

        The update only matches while from_owner is still the current owner,
        so concurrent transfers of the same record cannot both succeed.

        Args:
            address: The content address of the record
            from_owner: The owner expected to hold the record
            to_owner: The new owner
            ledger_receipt: Optional proof of the transfer on the ledger

        Returns:
            Updated record

        Raises:
            NotFoundError: If no record has this address
            OwnershipConflictError: If from_owner is not the current owner
        """
        now = datetime.now(timezone.utc)
        entry = {"from": from_owner, "to": to_owner, "timestamp": now}
        if ledger_receipt:
            entry["ledgerReceipt"] = ledger_receipt

        updated = await self._update_one(
            {"contentAddress": address, "currentOwner": from_owner},
            {
                "$set": {"currentOwner": to_owner, "lastUpdated": now},
                "$push": {"previousOwners": from_owner, "transferHistory": entry},
            }
        )
        if updated is not None:
            logger.info(f"Ownership of {address} transferred from {from_owner} to {to_owner}")
            return updated

        existing = await self.find_by_address(address)
        if existing is None:
            raise NotFoundError(f"Content with address {address} not found")

        logger.warning(
            f"Transfer of {address} rejected: {from_owner} is not the current owner "
            f"({existing.get('currentOwner')})"
        )
        raise OwnershipConflictError(
            f"Transfer rejected: {from_owner} is not the current owner of {address}"
        )

    async def list_all(self, page: int = 1, page_size: int = 10) -> List[Dict[str, Any]]:
        """
        List records, newest first.

        Args:
            page: 1-based page number
            page_size: Number of records per page

        Returns:
            List of content records on the requested page
        """
        try:
            cursor = (
                self.content_collection.find({})
                .sort("createdAt", DESCENDING)
                .skip((page - 1) * page_size)
                .limit(page_size)
            )
            records = await cursor.to_list(length=page_size)
            return [self._clean(record) for record in records]

        except PyMongoError as e:
            logger.error(f"Error listing content records: {str(e)}")
            raise StorageUnavailableError("Content store is unavailable") from e

    async def count_all(self) -> int:
        """Count all content records."""
        try:
            return await self.content_collection.count_documents({})

        except PyMongoError as e:
            logger.error(f"Error counting content records: {str(e)}")
            raise StorageUnavailableError("Content store is unavailable") from e

    async def count_by_criteria(self, event_type: str) -> int:
        """
        Count events of one kind across all records.

        Args:
            event_type: One of mint, transfer, verify or download

        Returns:
            Number of events of that kind
        """
        if event_type == "mint":
            return await self.count_all()

        field = HISTORY_FIELDS.get(event_type)
        if field is None:
            raise ValueError(f"Invalid event type. Must be one of: mint, {', '.join(HISTORY_FIELDS)}")

        pipeline = [
            {"$group": {
                "_id": None,
                "total": {"$sum": {"$size": {"$ifNull": [f"${field}", []]}}},
            }}
        ]
        try:
            results = await self.content_collection.aggregate(pipeline).to_list(length=None)

        except PyMongoError as e:
            logger.error(f"Error counting {event_type} events: {str(e)}")
            raise StorageUnavailableError("Content store is unavailable") from e

        return results[0]["total"] if results else 0

    async def find_recent_events(self, limit: int) -> List[Dict[str, Any]]:
        """
        Collect the most recent history events across all records.

        Mint events come from each record's creation; transfer, verify and
        download events are unwound from the history sublists. Requester
        context stays in the per-record history and is not projected here.

        Args:
            limit: Maximum number of events to return

        Returns:
            Event dicts sorted by timestamp, newest first
        """
        collection_name = self.content_collection.name
        newest = [{"$sort": {"timestamp": DESCENDING}}, {"$limit": limit}]

        pipeline = [
            {"$project": {
                "_id": 0,
                "kind": {"$literal": "mint"},
                "contentAddress": 1,
                "timestamp": "$createdAt",
                "to": "$registeredBy",
            }},
            *newest,
            {"$unionWith": {"coll": collection_name, "pipeline": [
                {"$unwind": "$transferHistory"},
                {"$project": {
                    "_id": 0,
                    "kind": {"$literal": "transfer"},
                    "contentAddress": 1,
                    "timestamp": "$transferHistory.timestamp",
                    "from": "$transferHistory.from",
                    "to": "$transferHistory.to",
                    "ledgerReceipt": "$transferHistory.ledgerReceipt",
                }},
                *newest,
            ]}},
            {"$unionWith": {"coll": collection_name, "pipeline": [
                {"$unwind": "$verificationHistory"},
                {"$project": {
                    "_id": 0,
                    "kind": {"$literal": "verify"},
                    "contentAddress": 1,
                    "timestamp": "$verificationHistory.timestamp",
                    "verifiedBy": "$verificationHistory.verifiedBy",
                    "outcome": "$verificationHistory.outcome",
                }},
                *newest,
            ]}},
            {"$unionWith": {"coll": collection_name, "pipeline": [
                {"$unwind": "$downloadHistory"},
                {"$project": {
                    "_id": 0,
                    "kind": {"$literal": "download"},
                    "contentAddress": 1,
                    "timestamp": "$downloadHistory.timestamp",
                    "downloadedBy": "$downloadHistory.downloadedBy",
                }},
                *newest,
            ]}},
            *newest,
        ]

        try:
            return await self.content_collection.aggregate(pipeline).to_list(length=limit)

        except PyMongoError as e:
            logger.error(f"Error collecting recent events: {str(e)}")
            raise StorageUnavailableError("Content store is unavailable") from e

    async def _push(self, address: str, field: str, entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update_one(
            {"contentAddress": address},
            {
                "$push": {field: entry},
                "$set": {"lastUpdated": datetime.now(timezone.utc)},
            }
        )

    async def _update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            record = await self.content_collection.find_one_and_update(
                query,
                update,
                return_document=ReturnDocument.AFTER
            )
            return self._clean(record)

        except PyMongoError as e:
            logger.error(f"Error updating content record: {str(e)}")
            raise StorageUnavailableError("Content store is unavailable") from e

    @staticmethod
    def _clean(record: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        # Convert ObjectId to string for API responses
        if record and "_id" in record:
            record["_id"] = str(record["_id"])
        return record
