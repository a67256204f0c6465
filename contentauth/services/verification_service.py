import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from contentauth.errors import InvalidInputError
from contentauth.repositories.content_repo import ContentRepository
from contentauth.services.blockchain_service import BlockchainService
from contentauth.utilities.hashing import compute_content_address

logger = logging.getLogger(__name__)


class VerificationService:
    """
    Verifies content by recomputing its content address.

    The content store decides whether content is verified. The ledger
    cross-check is advisory and never turns a verified result into an
    unverified one.
    """

    def __init__(
        self,
        content_repository: ContentRepository,
        registrar: Optional[BlockchainService] = None,
        external_timeout: float = 10.0,
        unattributed_owner: str = "unattributed"
    ):
        self.content_repository = content_repository
        self.registrar = registrar
        self.external_timeout = external_timeout
        self.unattributed_owner = unattributed_owner

    async def verify(
        self,
        data: bytes,
        requester_identity: Optional[str] = None,
        requester_context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Verify content bytes against the registry.

        Args:
            data: Raw file contents to verify
            requester_identity: Wallet address of the caller, if known
            requester_context: Client details recorded with the verification

        Returns:
            Dict with the verified flag, content address, record (when found)
            and the ledger cross-check result (True, False or None if unknown)

        Raises:
            InvalidInputError: If the content is empty
        """
        if not data:
            raise InvalidInputError("Uploaded file is empty")

        address = compute_content_address(data)
        record = await self.content_repository.find_by_address(address)

        if not record:
            logger.info(f"Verification of {address}: not registered")
            return {
                "verified": False,
                "contentAddress": address,
                "record": None,
                "ledgerCrossCheck": None,
                "message": "Content not found in the authentication registry",
            }

        entry = {
            "verifiedBy": requester_identity or self.unattributed_owner,
            "timestamp": datetime.now(timezone.utc),
            "outcome": "verified",
        }
        if requester_context:
            entry["requesterContext"] = requester_context

        updated = await self.content_repository.append_verification(address, entry)
        record = updated or record

        ledger_cross_check = await self._cross_check(address)
        if ledger_cross_check is False:
            logger.warning(f"Content {address} is registered in the database but not on the ledger")

        logger.info(f"Verification of {address}: verified")
        return {
            "verified": True,
            "contentAddress": address,
            "record": record,
            "ledgerCrossCheck": ledger_cross_check,
            "message": "Content authenticity verified - this file was previously registered",
        }

    async def _cross_check(self, address: str) -> Optional[bool]:
        if self.registrar is None:
            return None
        try:
            return await asyncio.wait_for(
                self.registrar.is_registered(address),
                timeout=self.external_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Ledger cross-check for {address} timed out after {self.external_timeout}s")
        except Exception as e:
            logger.warning(f"Ledger cross-check for {address} failed: {str(e)}")
        return None
