"""FastAPI application: CORS, error handling, auth and vault routes."""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from .auth_utils import CredentialService
from .config import Settings, load_settings
from .database import init_db, make_engine, make_session_factory
from .errors import BadRequest, Conflict, Internal, LockboxError
from .rate_limit import RateLimiter
from .routes import auth, shared, vault

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error_response(exc: LockboxError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app. Engine, credential service and rate limiter live on app.state."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    engine = make_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(
        title="Lockbox API",
        description="Password manager backend: client-encrypted personal and shared vaults",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.credentials = CredentialService(settings)
    app.state.rate_limiter = RateLimiter(settings.rate_limit_window_seconds)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(LockboxError)
    async def lockbox_error_handler(request: Request, exc: LockboxError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(BadRequest("Invalid request body"))

    @app.exception_handler(StaleDataError)
    async def stale_data_handler(request: Request, exc: StaleDataError):
        logger.warning("Stale write on %s %s", request.method, request.url.path)
        return _error_response(Conflict("Vault was modified concurrently; reload and retry"))

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Storage failure on %s %s", request.method, request.url.path)
        return _error_response(Internal("Storage error"))

    app.include_router(auth.router)
    app.include_router(vault.router)
    app.include_router(vault.router_vaults)
    app.include_router(shared.router)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    logger.info("Lockbox API ready (database: %s)", engine.url.render_as_string(hide_password=True))
    return app
