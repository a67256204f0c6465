from fastapi import Depends, Request

from contentauth.config import settings
from contentauth.database import get_db_client
from contentauth.errors import LedgerUnavailableError
from contentauth.handlers.history_handler import HistoryHandler
from contentauth.handlers.media_handler import MediaHandler
from contentauth.handlers.upload_handler import UploadHandler
from contentauth.repositories.content_repo import ContentRepository
from contentauth.services.blockchain_service import BlockchainService
from contentauth.services.content_service import ContentService
from contentauth.services.history_service import HistoryService
from contentauth.services.registration_service import RegistrationService
from contentauth.services.verification_service import VerificationService


def get_content_repository(db_client=Depends(get_db_client)) -> ContentRepository:
    return ContentRepository(db_client)


def get_history_service(
    content_repository: ContentRepository = Depends(get_content_repository)
) -> HistoryService:
    return HistoryService(content_repository)


def get_registration_service(
    request: Request,
    content_repository: ContentRepository = Depends(get_content_repository),
    history_service: HistoryService = Depends(get_history_service)
) -> RegistrationService:
    return RegistrationService(
        content_repository,
        history_service,
        blob_store=request.app.state.blob_store,
        registrar=request.app.state.registrar,
        external_timeout=settings.external_call_timeout_seconds,
        unattributed_owner=settings.unattributed_owner
    )


def get_verification_service(
    request: Request,
    content_repository: ContentRepository = Depends(get_content_repository)
) -> VerificationService:
    return VerificationService(
        content_repository,
        registrar=request.app.state.registrar,
        external_timeout=settings.external_call_timeout_seconds,
        unattributed_owner=settings.unattributed_owner
    )


def get_content_service(
    request: Request,
    content_repository: ContentRepository = Depends(get_content_repository)
) -> ContentService:
    return ContentService(
        content_repository,
        blob_store=request.app.state.blob_store,
        unattributed_owner=settings.unattributed_owner
    )


def get_upload_handler(
    registration_service: RegistrationService = Depends(get_registration_service),
    verification_service: VerificationService = Depends(get_verification_service)
) -> UploadHandler:
    """Dependency to get the upload handler with all required dependencies."""
    return UploadHandler(
        registration_service,
        verification_service,
        max_upload_bytes=settings.max_upload_bytes
    )


def get_media_handler(content_service: ContentService = Depends(get_content_service)) -> MediaHandler:
    return MediaHandler(content_service)


def get_history_handler(history_service: HistoryService = Depends(get_history_service)) -> HistoryHandler:
    return HistoryHandler(history_service)


def get_registrar(request: Request) -> BlockchainService:
    """
    Get the ledger registrar created at startup.

    Raises:
        LedgerUnavailableError: If the ledger is disabled or not configured
    """
    registrar = request.app.state.registrar
    if registrar is None:
        raise LedgerUnavailableError("Ledger registrar is not configured")
    return registrar
