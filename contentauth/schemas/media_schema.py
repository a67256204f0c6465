from pydantic import BaseModel, Field
from typing import Dict, Any, Optional, List


class RegistrationResponse(BaseModel):
    created: bool = Field(..., description="Whether a new record was created")
    duplicate: bool = Field(..., description="Whether the content was already registered")
    content_address: str = Field(..., description="SHA-256 content address", alias="contentAddress")
    record: Dict[str, Any] = Field(..., description="The content record")
    blob_stored: bool = Field(..., description="Whether the bytes are held by the blob store", alias="blobStored")
    ledger_registered: bool = Field(..., description="Whether the address was submitted to the ledger", alias="ledgerRegistered")
    event: Optional[Dict[str, Any]] = Field(None, description="Mint event for newly created records")
    message: Optional[str] = Field(None, description="Message describing the result")

    model_config = {"populate_by_name": True}


class VerificationResponse(BaseModel):
    verified: bool = Field(..., description="Whether the content is registered")
    content_address: str = Field(..., description="SHA-256 content address", alias="contentAddress")
    record: Optional[Dict[str, Any]] = Field(None, description="The matching record, if any")
    ledger_cross_check: Optional[bool] = Field(
        None,
        description="Whether the ledger also holds the address; null when unknown",
        alias="ledgerCrossCheck"
    )
    message: Optional[str] = Field(None, description="Message describing the result")

    model_config = {"populate_by_name": True}


class TransferRequest(BaseModel):
    from_owner: str = Field(..., description="The current owner", alias="from")
    to_owner: str = Field(..., description="The new owner", alias="to")
    proof: Optional[str] = Field(None, description="Ledger transaction hash backing the transfer")

    model_config = {"populate_by_name": True}


class TransferResponse(BaseModel):
    success: bool = Field(..., description="Whether the transfer was recorded")
    message: str = Field(..., description="Message describing the result")
    content_address: str = Field(..., description="SHA-256 content address", alias="contentAddress")
    from_owner: str = Field(..., description="The previous owner", alias="from")
    to_owner: str = Field(..., description="The new owner", alias="to")
    current_owner: str = Field(..., description="Owner after the transfer", alias="currentOwner")
    record: Dict[str, Any] = Field(..., description="The updated record")

    model_config = {"populate_by_name": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class MediaListResponse(BaseModel):
    data: List[Dict[str, Any]] = Field(..., description="Records on this page, newest first")
    pagination: Pagination
