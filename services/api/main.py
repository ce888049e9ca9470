"""
FastAPI application for the ETL Migration Platform.
"""
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CONFIG
from services.api.metadata import get_storage
from services.api.routers import catalog, connections, issues, projects
from services.api.schemas import HealthResponse
from services.api.sync_monitor import get_sync_monitor
from shared.errors import NotFoundError, RepositoryConnectionError, ValidationError
from shared.utils import setup_logger

logger = setup_logger(__name__, level=CONFIG.api.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Opens the storage facade on startup; stops every sync task and
    releases storage on shutdown.
    """
    # Startup
    logger.info(f"Starting {CONFIG.app_name} API (storage: {CONFIG.storage.backend})...")

    try:
        get_storage()
        get_sync_monitor()
        logger.info("Storage initialized")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        raise

    yield

    # Shutdown
    logger.info(f"Shutting down {CONFIG.app_name} API...")

    try:
        await get_sync_monitor().shutdown()
        get_storage().close()
        logger.info("Sync tasks stopped and storage closed")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title=f"{CONFIG.app_name} API",
    description="Discovery, assessment and sync of legacy ETL repositories",
    version=CONFIG.app_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(connections.router)
app.include_router(projects.router)
app.include_router(issues.router)
app.include_router(catalog.router)


# ===== ERROR MAPPING =====

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(RepositoryConnectionError)
async def repository_error_handler(request: Request, exc: RepositoryConnectionError):
    logger.error(f"Repository unavailable for {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "service": f"{CONFIG.app_name} API",
        "version": CONFIG.app_version,
        "status": "operational"
    }


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Checks storage connectivity and reports the number of running syncs.
    """
    storage_healthy = False

    try:
        storage_healthy = get_storage().health_check()
    except Exception as e:
        logger.error(f"Storage health check failed: {e}")

    monitor = get_sync_monitor()
    active_syncs = sum(1 for project_id in list(monitor.tasks) if monitor.is_running(project_id))

    return HealthResponse(
        status="healthy" if storage_healthy else "unhealthy",
        timestamp=datetime.utcnow(),
        storage=storage_healthy,
        active_syncs=active_syncs
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.api.main:app",
        host=CONFIG.api.host,
        port=CONFIG.api.port,
        log_level=CONFIG.api.log_level.lower()
    )
