from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from contentauth.database import DatabaseClient, get_db_client
from contentauth.schemas.system_schema import HealthResponse

router = APIRouter(
    tags=["System"],
)


@router.get("/health", response_model=HealthResponse)
async def health_check(db_client: DatabaseClient = Depends(get_db_client)) -> HealthResponse:
    """Liveness check that also reports database connectivity."""
    connected = await db_client.ping()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        database="connected" if connected else "unavailable"
    )
