import asyncio
import logging
from typing import Optional, Dict, Any

from contentauth.errors import InvalidInputError, RegistrationFailedError, StorageUnavailableError
from contentauth.repositories.content_repo import ContentRepository
from contentauth.services.blockchain_service import BlockchainService
from contentauth.services.history_service import HistoryService
from contentauth.services.ipfs_service import IPFSService
from contentauth.utilities.format import categorize_mime_type
from contentauth.utilities.hashing import compute_content_address

logger = logging.getLogger(__name__)

# Late attachment tasks still running
_late_attachments = set()


class RegistrationService:
    """
    Registers uploaded content by its content address.

    The content store write is the only required step. Storing the bytes on
    IPFS and registering the address on the ledger are attempted afterwards,
    concurrently and under a timeout; either may fail without undoing the
    registration. A call that outlives the timeout keeps running and its
    reference is attached to the record once it completes.
    """

    def __init__(
        self,
        content_repository: ContentRepository,
        history_service: HistoryService,
        blob_store: Optional[IPFSService] = None,
        registrar: Optional[BlockchainService] = None,
        external_timeout: float = 10.0,
        unattributed_owner: str = "unattributed"
    ):
        """
        Initialize with the content store and optional external collaborators.

        Args:
            content_repository: Repository for content record access
            history_service: Service producing history events
            blob_store: Optional IPFS blob store
            registrar: Optional ledger registrar
            external_timeout: Seconds allowed for each external call
            unattributed_owner: Owner recorded when the uploader is anonymous
        """
        self.content_repository = content_repository
        self.history_service = history_service
        self.blob_store = blob_store
        self.registrar = registrar
        self.external_timeout = external_timeout
        self.unattributed_owner = unattributed_owner

    async def register(
        self,
        data: bytes,
        metadata: Dict[str, Any],
        requester_identity: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Register content bytes.

        Args:
            data: Raw file contents
            metadata: Descriptive metadata (originalName, mimeType, title, description)
            requester_identity: Wallet address of the uploader, if known

        Returns:
            Dict describing the registration: created/duplicate flags, the record,
            and whether the blob store and ledger steps succeeded

        Raises:
            InvalidInputError: If the content is empty
            RegistrationFailedError: If the content store cannot be written
        """
        if not data:
            raise InvalidInputError("Uploaded file is empty")

        address = compute_content_address(data)
        descriptive = self._describe(data, metadata)
        owner = requester_identity or self.unattributed_owner

        try:
            record, created = await self.content_repository.create_if_absent(address, descriptive, owner)
        except StorageUnavailableError as e:
            logger.error(f"Registration of {address} failed: {str(e)}")
            raise RegistrationFailedError(f"Registration of {address} failed: content store is unavailable") from e

        if not created:
            logger.info(f"Duplicate upload of {address}, returning existing record")
            return self._result(record, created=False, event=None)

        blob_locator, ledger_receipt = await asyncio.gather(
            self._store_blob(address, data, descriptive),
            self._register_on_ledger(address, descriptive),
        )

        if blob_locator or ledger_receipt:
            try:
                updated = await self.content_repository.attach_external_refs(
                    address,
                    blob_locator=blob_locator,
                    ledger_receipt=ledger_receipt
                )
                record = updated or record
            except StorageUnavailableError as e:
                logger.error(f"Could not attach external references to {address}: {str(e)}")

        return self._result(record, created=True, event=self.history_service.mint_event(record))

    def _describe(self, data: bytes, metadata: Dict[str, Any]) -> Dict[str, Any]:
        original_name = metadata.get("originalName") or "untitled"
        mime_type = metadata.get("mimeType") or "application/octet-stream"
        return {
            "originalName": original_name,
            "mimeType": mime_type,
            "sizeBytes": len(data),
            "title": metadata.get("title") or original_name,
            "description": metadata.get("description") or "",
            "category": categorize_mime_type(mime_type),
        }

    async def _store_blob(self, address: str, data: bytes, descriptive: Dict[str, Any]) -> Optional[str]:
        if self.blob_store is None:
            return None
        return await self._bounded(
            "Blob storage",
            address,
            self.blob_store.put(data, descriptive["originalName"], descriptive["mimeType"]),
            "blob_locator"
        )

    async def _register_on_ledger(self, address: str, descriptive: Dict[str, Any]) -> Optional[str]:
        if self.registrar is None:
            return None
        return await self._bounded(
            "Ledger registration",
            address,
            self.registrar.register(address, descriptive),
            "ledger_receipt"
        )

    async def _bounded(self, label: str, address: str, call, ref_field: str) -> Optional[str]:
        # Shielded so a timeout stops the wait, not the call itself
        task = asyncio.ensure_future(call)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self.external_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"{label} for {address} timed out after {self.external_timeout}s, "
                f"reference will be attached if it completes"
            )
            late = asyncio.ensure_future(self._attach_when_done(label, address, task, ref_field))
            _late_attachments.add(late)
            late.add_done_callback(_late_attachments.discard)
        except Exception as e:
            logger.warning(f"{label} for {address} failed: {str(e)}")
        return None

    async def _attach_when_done(self, label: str, address: str, task: asyncio.Future, ref_field: str) -> None:
        """Attach the result of an external call that outlived its timeout."""
        try:
            value = await task
        except Exception as e:
            logger.warning(f"{label} for {address} failed after timing out: {str(e)}")
            return

        if not value:
            return

        try:
            await self.content_repository.attach_external_refs(address, **{ref_field: value})
            logger.info(f"{label} for {address} completed late, {ref_field} attached: {value}")
        except StorageUnavailableError as e:
            logger.error(f"Could not attach late {ref_field} to {address}: {str(e)}")

    @staticmethod
    def _result(record: Dict[str, Any], created: bool, event: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "created": created,
            "duplicate": not created,
            "contentAddress": record["contentAddress"],
            "record": record,
            "blobStored": bool(record.get("blobLocator")),
            "ledgerRegistered": bool(record.get("ledgerReceipt")),
            "event": event,
        }
