import httpx
import logging
from typing import Dict, Any, List

from contentauth.errors import BlobUnavailableError

logger = logging.getLogger(__name__)

# Public gateways tried in order when the storage service cannot serve a CID
FALLBACK_GATEWAYS = [
    "https://{cid}.ipfs.w3s.link",
    "https://{cid}.ipfs.dweb.link",
]


class IPFSService:
    """
    Blob store backed by a Web3 Storage service that pins uploads on IPFS.
    Stores raw content bytes and returns the CID as the blob locator.
    """

    def __init__(self, storage_service_url: str, timeout: float = 10.0):
        """
        Initialize with the storage service location.

        Args:
            storage_service_url: Base URL of the Web3 Storage service
            timeout: Timeout in seconds for each HTTP call
        """
        self.storage_service_url = storage_service_url.rstrip("/")
        self.timeout = timeout
        logger.info(f"Using Web3 Storage service at: {self.storage_service_url}")

    async def test_connection(self) -> Dict[str, Any]:
        """Test connection to web3 storage service for debugging."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.storage_service_url}/health")
                response.raise_for_status()
                result = response.json()
                logger.info(f"Web3 storage service health check successful: {result}")
                return {"status": "connected", "health_data": result}
        except Exception as exc:
            logger.error(f"Web3 storage service health check failed: {exc}")
            return {"status": "failed", "error": str(exc), "url": self.storage_service_url}

    async def put(self, data: bytes, filename: str, content_type: str) -> str:
        """
        Store content bytes on IPFS.

        Args:
            data: Raw file contents
            filename: Original filename, passed through to the storage service
            content_type: MIME type of the file

        Returns:
            String CID of the stored bytes

        Raises:
            BlobUnavailableError: If the storage service is unreachable or rejects the upload
        """
        files = {"files": (filename or "content.bin", data, content_type or "application/octet-stream")}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.storage_service_url}/upload", files=files)
                response.raise_for_status()

        except httpx.ConnectError as exc:
            logger.error(f"Connection error to Web3 storage service: {exc}")
            raise BlobUnavailableError(f"Cannot connect to Web3 storage service at {self.storage_service_url}") from exc
        except httpx.HTTPError as exc:
            logger.error(f"HTTP error uploading to IPFS: {str(exc)}")
            raise BlobUnavailableError(f"Web3 storage upload failed: {str(exc)}") from exc

        cid = self._extract_cid(response.json())
        logger.info(f"Successfully stored content on IPFS. CID: {cid}")
        return cid

    async def get(self, cid: str) -> bytes:
        """
        Retrieve content bytes from IPFS by CID.

        The storage service is asked first; public gateways are the fallback.

        Args:
            cid: Content identifier to retrieve

        Returns:
            The stored bytes

        Raises:
            BlobUnavailableError: If neither the service nor any gateway returns the content
        """
        urls = [f"{self.storage_service_url}/file/{cid}/contents"]
        urls.extend(gateway.format(cid=cid) for gateway in FALLBACK_GATEWAYS)

        errors: List[str] = []
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            for url in urls:
                try:
                    response = await client.get(url)
                    response.raise_for_status()
                    logger.info(f"Successfully retrieved content from IPFS with CID: {cid}")
                    return response.content
                except httpx.HTTPError as exc:
                    logger.info(f"Retrieving {cid} from {url} failed: {exc}")
                    errors.append(f"{url}: {exc}")

        logger.error(f"All IPFS sources failed for CID {cid}: {'; '.join(errors)}")
        raise BlobUnavailableError(f"Content {cid} could not be retrieved from IPFS")

    @staticmethod
    def _extract_cid(response_json: Dict[str, Any]) -> str:
        # The service answers {"cids": [{"cid": {"/": "<cid>"}}]} or a plain string CID
        cids = response_json.get("cids") or []
        if cids and "cid" in cids[0]:
            cid_value = cids[0]["cid"]
            if isinstance(cid_value, dict) and "/" in cid_value:
                cid = cid_value["/"]
            else:
                cid = str(cid_value)
            if cid:
                return cid
        raise BlobUnavailableError(f"Unable to extract CID from response: {response_json}")
