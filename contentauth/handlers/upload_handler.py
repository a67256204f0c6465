from fastapi import UploadFile
from typing import Dict, Any, Optional
import logging

from contentauth.errors import PayloadTooLargeError
from contentauth.services.registration_service import RegistrationService
from contentauth.services.verification_service import VerificationService
from contentauth.utilities.format import serialize_document

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 1024 * 1024


class UploadHandler:
    """
    Handler for upload and verification requests.
    Reads multipart uploads under the size limit and hands the bytes to the
    registration and verification services.
    """

    def __init__(
        self,
        registration_service: RegistrationService,
        verification_service: VerificationService,
        max_upload_bytes: int
    ):
        """
        Initialize with services.

        Args:
            registration_service: Service registering new content
            verification_service: Service verifying content
            max_upload_bytes: Largest accepted upload
        """
        self.registration_service = registration_service
        self.verification_service = verification_service
        self.max_upload_bytes = max_upload_bytes

    async def read_upload(self, file: UploadFile) -> bytes:
        """
        Read an uploaded file, stopping as soon as it exceeds the size limit.

        Raises:
            PayloadTooLargeError: If the file is larger than max_upload_bytes
        """
        chunks = []
        total = 0
        while True:
            chunk = await file.read(READ_CHUNK_BYTES)
            if not chunk:
                break
            total += len(chunk)
            if total > self.max_upload_bytes:
                logger.warning(f"Rejected upload {file.filename}: larger than {self.max_upload_bytes} bytes")
                raise PayloadTooLargeError(f"File exceeds the maximum upload size of {self.max_upload_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks)

    async def handle_upload(
        self,
        file: UploadFile,
        title: Optional[str] = None,
        description: Optional[str] = None,
        requester_identity: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Register an uploaded file.

        Args:
            file: The multipart file
            title: Optional title, defaults to the file name
            description: Optional description
            requester_identity: Wallet address of the uploader, if known

        Returns:
            Registration result with the record serialized for the response
        """
        data = await self.read_upload(file)
        metadata = {
            "originalName": file.filename,
            "mimeType": file.content_type,
            "title": title,
            "description": description,
        }

        result = await self.registration_service.register(data, metadata, requester_identity)

        response = dict(result)
        response["record"] = serialize_document(result["record"])
        if result.get("event"):
            response["event"] = serialize_document(result["event"])
        response["message"] = (
            "Content already registered" if result["duplicate"] else "Content registered successfully"
        )
        return response

    async def handle_verify(
        self,
        file: UploadFile,
        requester_identity: Optional[str] = None,
        requester_context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Verify an uploaded file against the registry.

        Returns:
            Verification result with the record serialized for the response
        """
        data = await self.read_upload(file)
        result = await self.verification_service.verify(data, requester_identity, requester_context)

        response = dict(result)
        if result.get("record"):
            response["record"] = serialize_document(result["record"])
        return response
