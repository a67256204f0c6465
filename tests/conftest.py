# conftest.py
import asyncio
import copy
import pytest
from unittest.mock import MagicMock, AsyncMock
from datetime import datetime, timezone

from contentauth.errors import NotFoundError, OwnershipConflictError
from contentauth.repositories.content_repo import HISTORY_FIELDS

TEST_ADDRESS = "a" * 64
TEST_OWNER = "0xa87a09e1c8E5F2256CDCAF96B2c3Dbff231D7D7f"
TEST_NEW_OWNER = "0x1234567890123456789012345678901234567890"


# Fixed timestamp for use in tests for consistency
@pytest.fixture
def fixed_timestamp():
    """Return a fixed timestamp for testing."""
    return datetime(2025, 3, 13, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_wallet_address():
    """Return a test wallet address."""
    return TEST_OWNER


@pytest.fixture
def sample_record(fixed_timestamp):
    """Return a content record as stored in MongoDB."""
    return {
        "_id": "6541e9b2f53c82a1b8c74e25",
        "contentAddress": TEST_ADDRESS,
        "originalName": "photo.jpg",
        "mimeType": "image/jpeg",
        "sizeBytes": 1536,
        "title": "Sunset",
        "description": "Taken at the beach",
        "category": "image",
        "blobLocator": "bafybeigdyrztest",
        "ledgerReceipt": "0xabc123",
        "registeredBy": TEST_OWNER,
        "currentOwner": TEST_OWNER,
        "previousOwners": [],
        "transferHistory": [],
        "verificationHistory": [],
        "downloadHistory": [],
        "createdAt": fixed_timestamp,
        "lastUpdated": fixed_timestamp,
    }


# Database and Repository Mocks
@pytest.fixture
def mock_db_client():
    """Create mock database client with the content collection."""
    client = MagicMock()
    collection = MagicMock()
    collection.name = "content"
    collection.find_one = AsyncMock()
    collection.insert_one = AsyncMock()
    collection.find_one_and_update = AsyncMock()
    collection.count_documents = AsyncMock()
    collection.create_indexes = AsyncMock()
    client.content_collection = collection
    return client


@pytest.fixture
def mock_content_repo():
    """Create mock ContentRepository."""
    repo = MagicMock()
    repo.find_by_address = AsyncMock()
    repo.create_if_absent = AsyncMock()
    repo.attach_external_refs = AsyncMock()
    repo.append_verification = AsyncMock()
    repo.append_download = AsyncMock()
    repo.record_transfer = AsyncMock()
    repo.list_all = AsyncMock()
    repo.count_all = AsyncMock()
    repo.count_by_criteria = AsyncMock()
    repo.find_recent_events = AsyncMock()
    return repo


# Service Mocks
@pytest.fixture
def mock_blockchain_service():
    """Create mock BlockchainService."""
    service = MagicMock()
    service.register = AsyncMock(return_value="0xabc123")
    service.is_registered = AsyncMock(return_value=True)
    service.list_registrations = AsyncMock(return_value=[])
    service.network_info = AsyncMock()
    service.wallet_address = "0x9876543210987654321098765432109876543210"
    return service


@pytest.fixture
def mock_ipfs_service():
    """Create mock IPFSService."""
    service = MagicMock()
    service.put = AsyncMock(return_value="bafybeigdyrztest")
    service.get = AsyncMock(return_value=b"stored bytes")
    return service


# Handler Mocks
@pytest.fixture
def mock_upload_handler():
    """Create mock UploadHandler."""
    handler = MagicMock()
    handler.handle_upload = AsyncMock()
    handler.handle_verify = AsyncMock()
    return handler


@pytest.fixture
def mock_media_handler():
    """Create mock MediaHandler."""
    handler = MagicMock()
    handler.list_media = AsyncMock()
    handler.get_media = AsyncMock()
    handler.transfer = AsyncMock()
    handler.download = AsyncMock()
    return handler


@pytest.fixture
def mock_history_handler():
    """Create mock HistoryHandler."""
    handler = MagicMock()
    handler.get_history = AsyncMock()
    handler.get_activity = AsyncMock()
    handler.get_stats = AsyncMock()
    return handler


class InMemoryContentRepository:
    """
    Dict-backed stand-in for ContentRepository.

    Insert and compare-and-swap happen without an await between check and
    write, which gives the same atomicity as the unique index and the
    filtered find_one_and_update in MongoDB.
    """

    def __init__(self):
        self.records = {}
        self.insert_attempts = 0

    async def find_by_address(self, address):
        await asyncio.sleep(0)
        record = self.records.get(address)
        return copy.deepcopy(record) if record else None

    async def create_if_absent(self, address, metadata, owner):
        self.insert_attempts += 1
        # Let concurrent callers reach this point before any of them writes
        await asyncio.sleep(0)
        if address in self.records:
            return copy.deepcopy(self.records[address]), False

        now = datetime.now(timezone.utc)
        self.records[address] = {
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
        return copy.deepcopy(self.records[address]), True

    async def attach_external_refs(self, address, blob_locator=None, ledger_receipt=None):
        await asyncio.sleep(0)
        record = self.records.get(address)
        if record is None:
            return None
        if blob_locator is not None:
            record["blobLocator"] = blob_locator
        if ledger_receipt is not None:
            record["ledgerReceipt"] = ledger_receipt
        return copy.deepcopy(record)

    async def append_verification(self, address, entry):
        return await self._push(address, "verificationHistory", entry)

    async def append_download(self, address, entry):
        return await self._push(address, "downloadHistory", entry)

    async def record_transfer(self, address, from_owner, to_owner, ledger_receipt=None):
        await asyncio.sleep(0)
        record = self.records.get(address)
        if record is None:
            raise NotFoundError(f"Content with address {address} not found")
        if record["currentOwner"] != from_owner:
            raise OwnershipConflictError(f"Transfer rejected: {from_owner} is not the current owner of {address}")

        entry = {"from": from_owner, "to": to_owner, "timestamp": datetime.now(timezone.utc)}
        if ledger_receipt:
            entry["ledgerReceipt"] = ledger_receipt
        record["currentOwner"] = to_owner
        record["previousOwners"].append(from_owner)
        record["transferHistory"].append(entry)
        return copy.deepcopy(record)

    async def list_all(self, page=1, page_size=10):
        ordered = sorted(self.records.values(), key=lambda r: r["createdAt"], reverse=True)
        start = (page - 1) * page_size
        return copy.deepcopy(ordered[start:start + page_size])

    async def count_all(self):
        return len(self.records)

    async def count_by_criteria(self, event_type):
        if event_type == "mint":
            return len(self.records)
        field = HISTORY_FIELDS[event_type]
        return sum(len(record[field]) for record in self.records.values())

    async def find_recent_events(self, limit):
        events = []
        for record in self.records.values():
            address = record["contentAddress"]
            events.append({
                "kind": "mint",
                "contentAddress": address,
                "timestamp": record["createdAt"],
                "to": record["registeredBy"],
            })
            for kind, field in HISTORY_FIELDS.items():
                for entry in record[field]:
                    public = {key: value for key, value in entry.items() if key != "requesterContext"}
                    events.append({"kind": kind, "contentAddress": address, **public})
        events.sort(key=lambda event: event["timestamp"], reverse=True)
        return copy.deepcopy(events[:limit])

    async def _push(self, address, field, entry):
        await asyncio.sleep(0)
        record = self.records.get(address)
        if record is None:
            return None
        record[field].append(entry)
        return copy.deepcopy(record)


@pytest.fixture
def memory_repo():
    """Create an empty in-memory content repository."""
    return InMemoryContentRepository()
