"""Trip Planner API."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from planner.access.principals import PrincipalResolver
from planner.access.verifier import build_verifier
from planner.core.config import settings
from planner.core.database import (
    StorageErrorKind,
    classify_storage_error,
    create_db_and_tables,
    get_session,
)
from planner.core.errors import InternalError, PlannerError, ServiceUnavailableError
from planner.routes import auth, claim, invite, items, participants, plans

# Configure logging
log_config = {
    "level": logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
if settings.log_dir:
    log_dir = Path(settings.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_config["filename"] = str(log_dir / "latest.log")

logging.basicConfig(**log_config)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Trip Planner API")
    create_db_and_tables()
    yield
    logger.info("Trip Planner API shut down")


app = FastAPI(
    title=settings.app_name,
    description="Plan trips together: plans, participants, invite links and packing items",
    version="0.1.0",
    lifespan=lifespan,
)

# Resolved once; JWT support never toggles at runtime
app.state.principal_resolver = PrincipalResolver(build_verifier(settings), jwt_enabled=settings.jwt_enabled)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application and storage errors onto ``{"message": ...}`` responses.

        PlannerError subclasses  -> their own status code
        transient storage error  -> 503 Database connection error
        other storage error      -> 500 Internal server error
    """

    @app.exception_handler(PlannerError)
    async def handle_planner_error(request: Request, exc: PlannerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message} | Context: {exc.context}")
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(SQLAlchemyError)
    async def handle_storage_error(request: Request, exc: SQLAlchemyError):
        kind = classify_storage_error(exc)
        logger.error(f"{request.method} {request.url.path} storage error ({kind.value}): {exc}", exc_info=True)
        if kind is StorageErrorKind.TRANSIENT:
            error = ServiceUnavailableError("Database connection error")
        else:
            error = InternalError()
        return JSONResponse(status_code=error.status_code, content={"message": error.message})


register_exception_handlers(app)

# Include routers
app.include_router(auth.router)
app.include_router(plans.router)
app.include_router(participants.router)
app.include_router(items.router)
app.include_router(invite.router)
app.include_router(claim.router)


@app.get("/health")
async def health(session: Session = Depends(get_session)):
    """Health check endpoint; reports whether the database answers."""
    try:
        session.exec(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed, database unreachable: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "disconnected"})
    return {"status": "healthy", "database": "connected"}
