from fastapi import APIRouter, Depends, File, Form, UploadFile, Query, Request, Response
from typing import Optional, Dict, Any
import logging

from contentauth.api.dependencies import get_upload_handler, get_media_handler, get_history_handler
from contentauth.handlers.history_handler import HistoryHandler
from contentauth.handlers.media_handler import MediaHandler
from contentauth.handlers.upload_handler import UploadHandler
from contentauth.schemas.history_schema import HistoryResponse
from contentauth.schemas.media_schema import (
    RegistrationResponse, VerificationResponse, TransferRequest, TransferResponse, MediaListResponse
)
from contentauth.utilities.format import content_disposition
from contentauth.utilities.request_context import get_requester_identity, get_requester_context

# Setup router
router = APIRouter(
    prefix="/media",
    tags=["Media"],
    responses={404: {"description": "Not found"}},
)

logger = logging.getLogger(__name__)


@router.get("", response_model=MediaListResponse)
async def list_media(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: int = Query(10, description="Records per page, at most 100"),
    media_handler: MediaHandler = Depends(get_media_handler)
) -> MediaListResponse:
    """List registered content, newest first."""
    result = await media_handler.list_media(page=page, limit=limit)
    return MediaListResponse(**result)


@router.post("/upload", response_model=RegistrationResponse)
async def upload_media(
    request: Request,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    upload_handler: UploadHandler = Depends(get_upload_handler)
) -> RegistrationResponse:
    """
    Register a file by its content address.

    Uploading content that is already registered returns the existing record
    with duplicate set to true.

    Args:
        file: The file to register
        title: Optional title, defaults to the file name
        description: Optional description

    Returns:
        RegistrationResponse with the record and the blob store and ledger outcomes
    """
    result = await upload_handler.handle_upload(
        file=file,
        title=title,
        description=description,
        requester_identity=get_requester_identity(request)
    )
    return RegistrationResponse(**result)


@router.post("/verify", response_model=VerificationResponse)
async def verify_media(
    request: Request,
    file: UploadFile = File(...),
    upload_handler: UploadHandler = Depends(get_upload_handler)
) -> VerificationResponse:
    """
    Check whether a file matches registered content.

    Unregistered content is not an error: the response has verified set to false.
    """
    result = await upload_handler.handle_verify(
        file=file,
        requester_identity=get_requester_identity(request),
        requester_context=get_requester_context(request)
    )
    return VerificationResponse(**result)


@router.get("/{content_address}")
async def get_media(
    content_address: str,
    media_handler: MediaHandler = Depends(get_media_handler)
) -> Dict[str, Any]:
    """Get one content record."""
    return await media_handler.get_media(content_address)


@router.post("/{content_address}/transfer", response_model=TransferResponse)
async def transfer_media(
    content_address: str,
    transfer_request: TransferRequest,
    media_handler: MediaHandler = Depends(get_media_handler)
) -> TransferResponse:
    """
    Transfer recorded ownership of content.

    The transfer only succeeds when 'from' is the current owner; otherwise
    the request fails with 409 and the record is unchanged.
    """
    result = await media_handler.transfer(
        content_address,
        transfer_request.from_owner,
        transfer_request.to_owner,
        transfer_request.proof
    )
    return TransferResponse(**result)


@router.get("/{content_address}/history", response_model=HistoryResponse)
async def get_media_history(
    content_address: str,
    history_handler: HistoryHandler = Depends(get_history_handler)
) -> HistoryResponse:
    """Get the transfer, verification and download history of one content record."""
    result = await history_handler.get_history(content_address)
    return HistoryResponse(**result)


@router.get("/{content_address}/content")
async def download_media(
    content_address: str,
    request: Request,
    media_handler: MediaHandler = Depends(get_media_handler)
) -> Response:
    """Download the stored bytes of a content record."""
    record, data = await media_handler.download(
        content_address,
        requester_identity=get_requester_identity(request),
        requester_context=get_requester_context(request)
    )
    return Response(
        content=data,
        media_type=record.get("mimeType") or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(record.get("originalName") or record["contentAddress"])}
    )
