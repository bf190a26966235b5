import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.assets import router as assets_router
from app.api.health import router as health_router
from app.api.paper_accounts import router as paper_accounts_router
from app.api.paper_orders import router as paper_orders_router
from app.api.paper_positions import router as paper_positions_router
from app.config.settings import Settings, get_settings
from app.db.postgres import close_postgres, init_postgres
from app.dependencies import AppContext
from app.middleware.monitoring import RequestMonitoringMiddleware
from app.monitoring.logger import setup_logging
from app.services.paper_trading.errors import ErrorCode, PaperTradingError

logger = logging.getLogger("options_desk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Setup logging first
    loggers = setup_logging(
        log_level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
        log_file=settings.LOG_FILE,
        enable_json_logging=settings.ENVIRONMENT == "production"
    )
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")

    engine, session_factory = await init_postgres(settings)
    app.state.context = AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        loggers=loggers,
    )
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    await close_postgres(engine)
    logger.info("Application shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PaperTradingError)
    async def paper_trading_error_handler(request: Request, exc: PaperTradingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = first.get("loc", ())
        code = ErrorCode.INVALID_REQUEST_BODY
        if location and location[0] in ("path", "query"):
            code = ErrorCode.INVALID_PARAMETER

        field_name = ".".join(str(part) for part in location[1:]) or "request"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Invalid {field_name}: {first.get('msg', 'validation failed')}", "code": code.value},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        logger.exception(
            f"Unhandled error on {request.method} {request.url.path}",
            extra={"request_id": request_id},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "code": ErrorCode.INTERNAL_ERROR.value},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings

    register_exception_handlers(app)

    # Request monitoring middleware
    app.add_middleware(RequestMonitoringMiddleware)

    # CORS middleware (last - furthest from the app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.ENVIRONMENT != "production" else settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    # Core API routes
    app.include_router(health_router, prefix="/api", tags=["health"])

    # Paper trading
    app.include_router(assets_router)
    app.include_router(paper_accounts_router)
    app.include_router(paper_orders_router)
    app.include_router(paper_positions_router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.APP_NAME} API", "version": settings.VERSION}

    return app


app = create_app()
