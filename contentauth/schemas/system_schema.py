from pydantic import BaseModel, Field
from typing import Dict, Any, List


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service status")
    timestamp: str = Field(..., description="Server time, ISO 8601")
    database: str = Field(..., description="Database connectivity: connected or unavailable")


class LedgerRegistrationsResponse(BaseModel):
    registrations: List[Dict[str, Any]] = Field(..., description="Registry entries, oldest first")
    total: int = Field(..., description="Number of registry entries")


class LedgerInfoResponse(BaseModel):
    chain_id: int = Field(..., alias="chainId")
    wallet_address: str = Field(..., alias="walletAddress")
    contract_address: str = Field(..., alias="contractAddress")
    balance: str = Field(..., description="Server wallet balance in ether")

    model_config = {"populate_by_name": True}
