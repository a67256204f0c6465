import pytest
from unittest.mock import MagicMock, AsyncMock
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from contentauth.api.dependencies import (
    get_upload_handler, get_media_handler, get_history_handler, get_registrar
)
from contentauth.database import get_db_client
from contentauth.errors import (
    NotFoundError, OwnershipConflictError, PayloadTooLargeError, StorageUnavailableError
)
from contentauth.main import app, lifespan
from contentauth.repositories.content_repo import ContentRepository

ADDRESS = "a" * 64
OWNER = "0xa87a09e1c8E5F2256CDCAF96B2c3Dbff231D7D7f"
NEW_OWNER = "0x1234567890123456789012345678901234567890"


@pytest.fixture
def client(mock_upload_handler, mock_media_handler, mock_history_handler):
    """Create test client with handlers replaced by mocks."""
    app.dependency_overrides[get_upload_handler] = lambda: mock_upload_handler
    app.dependency_overrides[get_media_handler] = lambda: mock_media_handler
    app.dependency_overrides[get_history_handler] = lambda: mock_history_handler
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def serialized_record():
    return {
        "contentAddress": ADDRESS,
        "originalName": "photo.jpg",
        "mimeType": "image/jpeg",
        "sizeBytes": 6,
        "formattedSize": "6 Bytes",
        "currentOwner": OWNER,
        "createdAt": "2025-03-13T12:00:00+00:00",
    }


class TestMediaRoutes:
    def test_upload(self, client, mock_upload_handler, serialized_record):
        mock_upload_handler.handle_upload.return_value = {
            "created": True,
            "duplicate": False,
            "contentAddress": ADDRESS,
            "record": serialized_record,
            "blobStored": True,
            "ledgerRegistered": False,
            "event": {"kind": "mint", "contentAddress": ADDRESS},
            "message": "Content registered successfully",
        }

        response = client.post(
            "/media/upload",
            files={"file": ("photo.jpg", b"pixels", "image/jpeg")},
            data={"title": "Sunset"},
            headers={"X-Wallet-Address": OWNER},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["created"] is True
        assert body["contentAddress"] == ADDRESS
        assert body["blobStored"] is True
        assert body["ledgerRegistered"] is False
        kwargs = mock_upload_handler.handle_upload.call_args[1]
        assert kwargs["title"] == "Sunset"
        assert kwargs["description"] is None
        assert kwargs["requester_identity"] == OWNER

    def test_upload_duplicate_is_success(self, client, mock_upload_handler, serialized_record):
        mock_upload_handler.handle_upload.return_value = {
            "created": False,
            "duplicate": True,
            "contentAddress": ADDRESS,
            "record": serialized_record,
            "blobStored": True,
            "ledgerRegistered": True,
            "event": None,
            "message": "Content already registered",
        }

        response = client.post("/media/upload", files={"file": ("photo.jpg", b"pixels", "image/jpeg")})

        assert response.status_code == 200
        assert response.json()["duplicate"] is True

    def test_upload_without_file(self, client, mock_upload_handler):
        response = client.post("/media/upload", data={"title": "No file"})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INPUT"
        mock_upload_handler.handle_upload.assert_not_called()

    def test_upload_too_large(self, client, mock_upload_handler):
        mock_upload_handler.handle_upload.side_effect = PayloadTooLargeError("File exceeds the maximum upload size")

        response = client.post("/media/upload", files={"file": ("big.bin", b"x", "application/octet-stream")})

        assert response.status_code == 400
        assert response.json() == {
            "error": "PAYLOAD_TOO_LARGE",
            "detail": "File exceeds the maximum upload size",
        }

    def test_upload_store_unavailable(self, client, mock_upload_handler):
        mock_upload_handler.handle_upload.side_effect = StorageUnavailableError("Content store is unavailable")

        response = client.post("/media/upload", files={"file": ("photo.jpg", b"pixels", "image/jpeg")})

        assert response.status_code == 503
        assert response.json()["error"] == "STORAGE_UNAVAILABLE"

    def test_verify_passes_requester_context(self, client, mock_upload_handler):
        mock_upload_handler.handle_verify.return_value = {
            "verified": False,
            "contentAddress": ADDRESS,
            "record": None,
            "ledgerCrossCheck": None,
            "message": "Content not found in the authentication registry",
        }

        response = client.post(
            "/media/verify",
            files={"file": ("photo.jpg", b"pixels", "image/jpeg")},
            headers={"User-Agent": "pytest-agent"},
        )

        assert response.status_code == 200
        assert response.json()["verified"] is False
        assert response.json()["ledgerCrossCheck"] is None
        kwargs = mock_upload_handler.handle_verify.call_args[1]
        assert kwargs["requester_identity"] is None
        assert kwargs["requester_context"]["userAgent"] == "pytest-agent"
        assert kwargs["requester_context"]["ipAddress"]

    def test_list_media(self, client, mock_media_handler, serialized_record):
        mock_media_handler.list_media.return_value = {
            "data": [serialized_record],
            "pagination": {"page": 2, "limit": 5, "total": 6, "pages": 2},
        }

        response = client.get("/media", params={"page": 2, "limit": 5})

        assert response.status_code == 200
        assert response.json()["pagination"]["pages"] == 2
        mock_media_handler.list_media.assert_called_once_with(page=2, limit=5)

    def test_list_media_non_numeric_page(self, client):
        response = client.get("/media", params={"page": "first"})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INPUT"

    def test_get_media(self, client, mock_media_handler, serialized_record):
        mock_media_handler.get_media.return_value = serialized_record

        response = client.get(f"/media/{ADDRESS}")

        assert response.status_code == 200
        assert response.json()["contentAddress"] == ADDRESS

    def test_get_media_not_found(self, client, mock_media_handler):
        mock_media_handler.get_media.side_effect = NotFoundError(f"Content with address {ADDRESS} not found")

        response = client.get(f"/media/{ADDRESS}")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_transfer(self, client, mock_media_handler, serialized_record):
        mock_media_handler.transfer.return_value = {
            "success": True,
            "message": "Ownership transferred successfully",
            "contentAddress": ADDRESS,
            "from": OWNER,
            "to": NEW_OWNER,
            "currentOwner": NEW_OWNER,
            "record": serialized_record,
        }

        response = client.post(f"/media/{ADDRESS}/transfer", json={"from": OWNER, "to": NEW_OWNER})

        assert response.status_code == 200
        body = response.json()
        assert body["from"] == OWNER
        assert body["to"] == NEW_OWNER
        assert body["currentOwner"] == NEW_OWNER
        mock_media_handler.transfer.assert_called_once_with(ADDRESS, OWNER, NEW_OWNER, None)

    def test_transfer_conflict(self, client, mock_media_handler):
        mock_media_handler.transfer.side_effect = OwnershipConflictError("Transfer rejected")

        response = client.post(f"/media/{ADDRESS}/transfer", json={"from": OWNER, "to": NEW_OWNER})

        assert response.status_code == 409
        assert response.json() == {"error": "OWNERSHIP_CONFLICT", "detail": "Transfer rejected"}

    def test_transfer_missing_owner(self, client, mock_media_handler):
        response = client.post(f"/media/{ADDRESS}/transfer", json={"to": NEW_OWNER})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INPUT"
        mock_media_handler.transfer.assert_not_called()

    def test_history(self, client, mock_history_handler):
        mock_history_handler.get_history.return_value = {
            "contentInfo": {"contentAddress": ADDRESS, "totalTransfers": 0},
            "transferHistory": [],
            "verificationHistory": [],
            "downloadHistory": [],
            "mergedTimeline": [{"kind": "mint", "contentAddress": ADDRESS}],
        }

        response = client.get(f"/media/{ADDRESS}/history")

        assert response.status_code == 200
        assert response.json()["mergedTimeline"][0]["kind"] == "mint"

    def test_download(self, client, mock_media_handler, serialized_record):
        mock_media_handler.download.return_value = (serialized_record, b"pixels")

        response = client.get(f"/media/{ADDRESS}/content")

        assert response.status_code == 200
        assert response.content == b"pixels"
        assert response.headers["content-type"] == "image/jpeg"
        assert 'filename="photo.jpg"' in response.headers["content-disposition"]

    def test_download_non_ascii_name(self, client, mock_media_handler, serialized_record):
        """Test that names outside latin-1 are sent percent-encoded instead of failing."""
        mock_media_handler.download.return_value = ({**serialized_record, "originalName": "фото.jpg"}, b"pixels")

        response = client.get(f"/media/{ADDRESS}/content")

        assert response.status_code == 200
        assert response.content == b"pixels"
        disposition = response.headers["content-disposition"]
        assert "filename*=UTF-8''%D1%84%D0%BE%D1%82%D0%BE.jpg" in disposition
        assert 'filename="____.jpg"' in disposition

    def test_unexpected_error_is_hidden(self, client, mock_media_handler):
        """Test that unknown failures return a generic 500 without internals."""
        mock_media_handler.get_media.side_effect = RuntimeError("connection string mongodb://secret")

        response = client.get(f"/media/{ADDRESS}")

        assert response.status_code == 500
        assert response.json() == {"error": "INTERNAL_ERROR", "detail": "Internal server error"}


class TestActivityRoutes:
    def test_activity(self, client, mock_history_handler):
        mock_history_handler.get_activity.return_value = {
            "activities": [{"kind": "verify", "contentAddress": ADDRESS}],
            "total": 1,
        }

        response = client.get("/activity", params={"limit": 10})

        assert response.status_code == 200
        assert response.json()["total"] == 1
        mock_history_handler.get_activity.assert_called_once_with(10)

    def test_activity_default_limit(self, client, mock_history_handler):
        mock_history_handler.get_activity.return_value = {"activities": [], "total": 0}

        client.get("/activity")

        mock_history_handler.get_activity.assert_called_once_with(50)

    def test_stats(self, client, mock_history_handler):
        mock_history_handler.get_stats.return_value = {"overview": {
            "totalContent": 2,
            "totalVerifications": 3,
            "totalTransfers": 1,
            "totalDownloads": 0,
            "totalActivities": 4,
        }}

        response = client.get("/stats")

        assert response.status_code == 200
        assert response.json()["overview"]["totalActivities"] == 4


class TestSystemRoutes:
    def test_health(self, client):
        db_client = MagicMock()
        db_client.ping = AsyncMock(return_value=False)
        app.dependency_overrides[get_db_client] = lambda: db_client

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "unavailable"
        assert body["timestamp"]

    def test_ledger_unavailable(self, client, monkeypatch):
        monkeypatch.setattr(app.state, "registrar", None, raising=False)

        response = client.get("/ledger/registrations")

        assert response.status_code == 503
        assert response.json()["error"] == "LEDGER_UNAVAILABLE"

    def test_ledger_registrations(self, client, mock_blockchain_service):
        mock_blockchain_service.list_registrations.return_value = [
            {"index": 0, "hash": ADDRESS, "metadata": "{}"}
        ]
        app.dependency_overrides[get_registrar] = lambda: mock_blockchain_service

        response = client.get("/ledger/registrations")

        assert response.status_code == 200
        assert response.json() == {
            "registrations": [{"index": 0, "hash": ADDRESS, "metadata": "{}"}],
            "total": 1,
        }

    def test_ledger_info(self, client, mock_blockchain_service):
        mock_blockchain_service.network_info.return_value = {
            "chainId": 11155111,
            "walletAddress": mock_blockchain_service.wallet_address,
            "contractAddress": "0x" + "22" * 20,
            "balance": "0.5",
        }
        app.dependency_overrides[get_registrar] = lambda: mock_blockchain_service

        response = client.get("/ledger/info")

        assert response.status_code == 200
        assert response.json()["chainId"] == 11155111
        assert response.json()["balance"] == "0.5"

    def test_ledger_read_failure(self, client, mock_blockchain_service):
        mock_blockchain_service.list_registrations.side_effect = ConnectionError("rpc down")
        app.dependency_overrides[get_registrar] = lambda: mock_blockchain_service

        response = client.get("/ledger/registrations")

        assert response.status_code == 503
        assert response.json()["error"] == "LEDGER_UNAVAILABLE"


class TestLifespan:
    @pytest.fixture
    def db_client(self, monkeypatch):
        db_client = MagicMock()
        monkeypatch.setattr("contentauth.main.DatabaseClient", lambda settings: db_client)
        monkeypatch.setattr(app.state, "db_client", None, raising=False)
        monkeypatch.setattr(app.state, "blob_store", None, raising=False)
        monkeypatch.setattr(app.state, "registrar", None, raising=False)
        return db_client

    @pytest.mark.asyncio
    async def test_startup_fails_without_unique_index(self, db_client, monkeypatch):
        """Test that the app refuses to serve when the content indexes cannot be created."""
        monkeypatch.setattr(ContentRepository, "create_indexes", AsyncMock(side_effect=PyMongoError("no primary")))

        with pytest.raises(PyMongoError):
            async with lifespan(app):
                pass

        db_client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self, db_client, monkeypatch, mock_blockchain_service):
        monkeypatch.setattr(ContentRepository, "create_indexes", AsyncMock())
        monkeypatch.setattr("contentauth.main.build_blob_store", lambda: None)
        monkeypatch.setattr("contentauth.main.build_registrar", lambda: mock_blockchain_service)

        async with lifespan(app):
            assert app.state.db_client is db_client
            assert app.state.registrar is mock_blockchain_service

        mock_blockchain_service.close.assert_called_once()
        db_client.close.assert_called_once()
