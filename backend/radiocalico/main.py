"""
RadioCalico - FastAPI Backend
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from radiocalico import __version__
from radiocalico.config import settings
from radiocalico.dependencies import get_backend
from radiocalico.errors import InputError, StorageError
from radiocalico.routers import network, ratings, songs, users
from radiocalico.services.database import POSTGRES, StorageBackend, create_backend

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Sentry error tracking (optional, enabled when SENTRY_DSN is set)
_sentry_dsn = os.getenv("SENTRY_DSN")
if _sentry_dsn:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=_sentry_dsn,
            traces_sample_rate=0.1,
            environment=os.getenv("SENTRY_ENVIRONMENT", "production"),
            release=f"radiocalico-api@{__version__}",
            integrations=[FastApiIntegration(), SqlalchemyIntegration()],
        )
        logger.info("[Sentry] Initialized for API")
    except ImportError:
        logger.warning("[Sentry] sentry-sdk not installed, skipping")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting RadioCalico API (debug=%s)", settings.debug)

    # Schema failures are fatal: SchemaInitError aborts startup
    backend = create_backend(settings)
    try:
        await backend.init_schema()
    except Exception:
        await backend.close()
        raise
    app.state.backend = backend

    yield

    logger.info("Shutting down...")
    await backend.close()


app = FastAPI(
    title="RadioCalico",
    description="Song ratings API for the RadioCalico web player",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Error responses: {"error": message}
# ============================================

@app.exception_handler(InputError)
async def handle_input_error(request: Request, exc: InputError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request: {location or 'body'}: {errors[0].get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StorageError)
async def handle_storage_error(request: Request, exc: StorageError):
    # Details are logged where the error is raised; clients only get the summary
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Include routers
app.include_router(ratings.router, prefix="/api/song", tags=["Ratings"])
app.include_router(songs.router, prefix="/api", tags=["Songs"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(network.router, prefix="/api", tags=["Network"])


@app.get("/")
async def root(backend: StorageBackend = Depends(get_backend)):
    """Service banner."""
    database = "PostgreSQL" if backend.kind == POSTGRES else "SQLite"
    return {
        "message": "Welcome to RadioCalico API",
        "status": "Server is running",
        "database": f"{database} Connected",
    }


@app.get("/health")
async def health(backend: StorageBackend = Depends(get_backend)):
    """Detailed health check: verifies database connectivity."""
    checks = {"api": True, "database": await backend.ping()}
    status = "healthy" if all(checks.values()) else "degraded"
    return {"status": status, "version": __version__, "services": checks}
