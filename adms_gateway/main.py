# =======================================================================================
# adms_gateway/main.py - FastAPI Application Entry Point
# =======================================================================================
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import config
from .api.routes.iclock import router as iclock_router
from .api.routes.sync import router as sync_router
from .api.routes.users import router as users_router
from .api.routes.dashboard import router as dashboard_router
from .api.routes.commands import router as commands_router
from .api.routes.bindings import router as bindings_router
from .database import DatabaseManager
from .models.schemas import HealthResponse
from .utils.exceptions import GatewayError

logging.basicConfig(
    level=logging.DEBUG if config.API_DEBUG else getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def create_app(db_manager: Optional[DatabaseManager] = None) -> FastAPI:
    db_manager = db_manager or DatabaseManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.DB_AUTO_CREATE:
            logger.info("Creating missing tables...")
            db_manager.create_tables()
        logger.info("ADMS gateway started")
        yield
        db_manager.dispose()
        logger.info("ADMS gateway stopped")

    app = FastAPI(
        title="ADMS Device Gateway",
        version=__version__,
        description="Push-protocol gateway between biometric terminals and the attendance store",
        debug=config.API_DEBUG,
        lifespan=lifespan,
    )
    app.state.db_manager = db_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(iclock_router, prefix="/iclock", tags=["adms"])
    app.include_router(sync_router, prefix="/api", tags=["sync"])
    app.include_router(users_router, prefix="/api", tags=["users"])
    app.include_router(dashboard_router, prefix="/api", tags=["dashboard"])
    app.include_router(commands_router, prefix="/api", tags=["commands"])
    app.include_router(bindings_router, prefix="/api", tags=["bindings"])

    # Error handlers
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(exc.status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        message = f"Missing or invalid parameters: {', '.join(fields)}" if fields else "Invalid request"
        return _error(400, message)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return _error(500, f"Database error: {exc.__class__.__name__}")

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def api_health():
        try:
            db_manager.fetch_one("SELECT 1")
            return HealthResponse(status="ok", dataAvailable=True, message=None)
        except SQLAlchemyError as e:
            return HealthResponse(status="error", dataAvailable=False, message=str(e))

    return app


app = create_app()
