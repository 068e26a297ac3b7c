"""
Main FastAPI Application

Entry point for the MeatMath Pro API.
Configures middleware, routes, error handlers, and startup/shutdown events.

Every error leaves the service as {"message": ...}.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from meatmath import __version__
from meatmath.config import get_settings
from meatmath.database import engine, init_db, SessionLocal
from meatmath.models.species import seed_default_species
from meatmath.middleware.rate_limit import RateLimitMiddleware
from meatmath.middleware.security import SecurityHeadersMiddleware
from meatmath.utils.logging import setup_logging, get_logger
from meatmath.core.exceptions import StoreUnavailableError

from meatmath.api.endpoints import (
    auth,
    organizations,
    dashboard,
    species,
    customers,
    processing_records,
    inventory,
    invoices,
    cut_instructions,
)

settings = get_settings()

setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

    # Tables are created here in development only; migrations own production
    if settings.ENVIRONMENT == "development":
        logger.warning("Initializing database tables (dev mode)")
        init_db()

    if settings.SEED_DEFAULT_SPECIES:
        db = SessionLocal()
        try:
            added = seed_default_species(db)
            if added:
                logger.info(f"Seeded {added} default species")
        finally:
            db.close()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    engine.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="MeatMath Pro API",
    description="Meat processing management with organization-scoped access control",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ENVIRONMENT == "development" else settings.CORS_ORIGINS,
    allow_credentials=settings.ENVIRONMENT != "development",
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(RateLimitMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    """
    The membership lookup failed. The request was denied; the client only
    learns that something went wrong on our side.
    """
    logger.error(
        f"Request denied, tenant store unavailable: {exc.detail}",
        extra={"path": request.url.path, "method": request.method, "decision": exc.decision.value}
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTPException (ours and the framework's) as {"message": ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None) or {}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid bodies, paths and queries are client errors: 400, not 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler.

    Full details go to the log; the client gets a generic message unless
    DEBUG is on.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method}
    )

    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"message": str(exc), "type": type(exc).__name__}
        )
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"}
    )


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "MeatMath Pro API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(auth.router, prefix="/api/v1")
app.include_router(organizations.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")
app.include_router(species.router, prefix="/api/v1")
app.include_router(customers.router, prefix="/api/v1")
app.include_router(processing_records.router, prefix="/api/v1")
app.include_router(inventory.router, prefix="/api/v1")
app.include_router(invoices.router, prefix="/api/v1")
app.include_router(cut_instructions.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.DEBUG}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    uvicorn.run(
        "meatmath.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
