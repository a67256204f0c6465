from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from contentauth.api import media_router, activity_router, ledger_router, system_router
from contentauth.config import settings
from contentauth.database import DatabaseClient
from contentauth.errors import ContentAuthError
from contentauth.repositories.content_repo import ContentRepository
from contentauth.services.blockchain_service import BlockchainService
from contentauth.services.ipfs_service import IPFSService

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def build_blob_store():
    if not settings.blob_store_enabled:
        logger.info("Blob store disabled")
        return None
    return IPFSService(
        settings.web3_storage_service_url,
        timeout=settings.external_call_timeout_seconds
    )


def build_registrar():
    if not settings.ledger_enabled:
        logger.info("Ledger registration disabled")
        return None
    if not settings.ledger_configured:
        logger.warning("Ledger registration enabled but SEPOLIA_RPC_URL, SEPOLIA_PRIVATE_KEY or MEDIA_REGISTRY_ADDRESS is missing")
        return None
    try:
        return BlockchainService(settings)
    except Exception as e:
        logger.error(f"Error initializing ledger registrar: {e}")
        return None


# Define lifespan context manager
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: connect the content store and the optional external services
    db_client = DatabaseClient(settings)
    app.state.db_client = db_client

    # Uploads rely on the unique contentAddress index; startup fails without it
    try:
        await ContentRepository(db_client).create_indexes()
        logger.info("Content indexes created successfully")
    except Exception as e:
        logger.error(f"Error creating content indexes, aborting startup: {e}")
        db_client.close()
        raise

    app.state.blob_store = build_blob_store()
    app.state.registrar = build_registrar()

    yield

    # Shutdown: Clean up resources
    if app.state.registrar is not None:
        app.state.registrar.close()
    db_client.close()


# Create FastAPI app with lifespan
app = FastAPI(
    title="Content Authentication Registry API",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"]
)


@app.exception_handler(ContentAuthError)
async def content_auth_error_handler(request: Request, exc: ContentAuthError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "detail": exc.message}
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', []))}: {error.get('msg')}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": "INVALID_INPUT", "detail": problems or "Invalid request"}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "detail": "Internal server error"}
    )


# Include API routers
api_routers = [
    system_router,
    media_router,
    activity_router,
    ledger_router,
]

# Add all routers to the app
for router in api_routers:
    app.include_router(router)


def run():
    import uvicorn

    uvicorn.run("contentauth.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
