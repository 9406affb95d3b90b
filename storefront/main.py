from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import logging
import traceback

from storefront import __version__
from storefront.api import claims, downloads, files, health, products, purchases
from storefront.config import Settings, get_settings
from storefront.db.database import create_db_engine, create_session_factory, init_db
from storefront.errors import StorefrontError
from storefront.services.chain_client import ChainClient
from storefront.services.storage_providers import SupabaseStorageProvider

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")

    engine = app.state.engine
    if engine is not None and settings.run_migrations:
        await init_db(settings, engine)

    logger.info(f"{settings.app_name} started successfully")
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    if engine is not None:
        engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; settings, engine and clients are created once here"""
    settings = settings or get_settings()
    configure_logging(settings)

    missing = settings.missing_required()
    if missing:
        # Handlers that need a missing dependency fail on first use
        logger.warning(f"Missing configuration: {', '.join(missing)}")

    app = FastAPI(
        title="Storefront API",
        description="""
        Digital goods storefront backed by on-chain payments.

        **Features:**
        - Tenant-scoped product administration with optimistic locking
        - Public and private file storage (Supabase Storage)
        - Purchase verification against an EVM JSON-RPC endpoint
        - Single-use, expiring download tokens
        - Wallet claim history with a fresh on-chain check
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )

    app.state.settings = settings
    app.state.engine = None
    app.state.session_factory = None
    if settings.database_url:
        app.state.engine = create_db_engine(settings.database_url)
        app.state.session_factory = create_session_factory(app.state.engine)

    app.state.storage = SupabaseStorageProvider(settings.supabase_url, settings.supabase_service_role_key)
    app.state.chain_client = ChainClient(settings.chain_rpc_url, timeout=settings.chain_rpc_timeout_seconds)

    allow_credentials = "*" not in settings.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"],
        max_age=3600,
    )

    @app.exception_handler(StorefrontError)
    async def storefront_exception_handler(request: Request, exc: StorefrontError):
        """Render service errors with their status and code"""
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_dict())
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        logger.warning(
            f"Validation error: {exc.errors()}",
            extra={
                "path": request.url.path,
                "method": request.method,
            }
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder({
                "success": False,
                "error": "Invalid request",
                "code": "VALIDATION_ERROR",
                "details": exc.errors()
            })
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Routing errors (unknown path, wrong method) in the same envelope as service errors"""
        codes = {
            status.HTTP_404_NOT_FOUND: "NOT_FOUND",
            status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
        }
        logger.info(f"{request.method} {request.url.path} rejected: {exc.status_code}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": exc.detail,
                "code": codes.get(exc.status_code, "HTTP_ERROR"),
            },
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions and log them properly"""
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
            exc_info=True,
            extra={
                "path": request.url.path,
                "method": request.method,
            }
        )
        content = {
            "success": False,
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": str(exc)
        }
        if not settings.is_production:
            content["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    # Include routers
    app.include_router(health.router)
    app.include_router(products.router, prefix="/api")
    app.include_router(files.router, prefix="/api")
    app.include_router(purchases.router, prefix="/api")
    app.include_router(downloads.router, prefix="/api")
    app.include_router(claims.router, prefix="/api")

    # Plain OPTIONS requests that are not CORS preflights still get a 200 no-op.
    # Registered after the routers so a wrong method reports their Allow header.
    @app.options("/{full_path:path}")
    async def options_handler(full_path: str):
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/")
    async def root():
        return {"service": settings.app_name, "version": __version__}

    return app


app = create_app()
