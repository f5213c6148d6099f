from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from vending.config import Settings, get_settings
from vending.container import Container
from vending.errors import VendingError
from vending.schemas.common import ErrorResponse
from vending.api import health, oauth2, products, purchases, roles, users

logger = logging.getLogger(__name__)


def _error_body(status_code: int, message: str, request: Request) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        code=status_code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def vending_error_handler(request: Request, exc: VendingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind.value}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind.value}: {exc.message}")
    return _error_body(exc.status_code, exc.message, request)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _error_body(400, message, request)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly: {exc}")
    return _error_body(500, "Internal server error", request)


def create_app(settings: Settings = None, container: Container = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to run with; loaded from the environment if omitted
        container: Pre-built composition root; when given, the caller owns
            its startup and shutdown

    Returns:
        Configured application
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup and shutdown events.
        """
        if getattr(app.state, "container", None) is not None:
            yield
            return

        # Startup
        logger.info("Starting up application...")
        app.state.container = Container(settings)
        await app.state.container.startup()

        yield

        # Shutdown
        logger.info("Shutting down application...")
        await app.state.container.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
    A vending machine marketplace API:

    - **Users**: Buyers insert coins, sellers list products, admins manage roles
    - **Products**: Sellers manage their own catalog
    - **Purchases**: Buying debits the deposit, decrements stock and returns change in coins
    - **OAuth2**: Password and refresh-token grants for registered vending machines

    ## Features

    ### Optimistic Concurrency
    Users, products and purchases carry a version number. Every write is a
    compare-and-set on that version, so concurrent purchases of the last
    item cannot both succeed.

    ### Change
    Change is returned in the fewest coins from 5, 10, 20, 50 and 100 cents.
    """,
        version="1.0.0",
        lifespan=lifespan
    )

    if container is not None:
        app.state.container = container

    app.add_exception_handler(VendingError, vending_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(oauth2.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(roles.router, prefix="/api/v1")
    app.include_router(products.router, prefix="/api/v1")
    app.include_router(purchases.router, prefix="/api/v1")

    @app.get("/", tags=["Root"])
    def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": "1.0.0",
            "docs": "/docs",
            "redoc": "/redoc",
            "health": "/api/v1/health"
        }

    return app


app = create_app()
