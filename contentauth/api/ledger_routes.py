from fastapi import APIRouter, Depends
import logging

from contentauth.api.dependencies import get_registrar
from contentauth.errors import LedgerUnavailableError
from contentauth.schemas.system_schema import LedgerRegistrationsResponse, LedgerInfoResponse
from contentauth.services.blockchain_service import BlockchainService

router = APIRouter(
    prefix="/ledger",
    tags=["Ledger"],
    responses={503: {"description": "Ledger unavailable"}},
)

logger = logging.getLogger(__name__)


@router.get("/registrations", response_model=LedgerRegistrationsResponse)
async def list_registrations(
    registrar: BlockchainService = Depends(get_registrar)
) -> LedgerRegistrationsResponse:
    """List every entry of the media registry contract."""
    try:
        registrations = await registrar.list_registrations()
    except Exception as e:
        logger.error(f"Error reading media registry: {str(e)}")
        raise LedgerUnavailableError(f"Could not read media registry: {str(e)}") from e

    return LedgerRegistrationsResponse(registrations=registrations, total=len(registrations))


@router.get("/info", response_model=LedgerInfoResponse)
async def get_ledger_info(
    registrar: BlockchainService = Depends(get_registrar)
) -> LedgerInfoResponse:
    """Chain, contract and server wallet details."""
    try:
        info = await registrar.network_info()
    except Exception as e:
        logger.error(f"Error reading network info: {str(e)}")
        raise LedgerUnavailableError(f"Could not read network info: {str(e)}") from e

    return LedgerInfoResponse(**info)
