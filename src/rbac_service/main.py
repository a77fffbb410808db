import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.bootstrap import bootstrap_rbac
from rbac_service.config import Settings, settings
from rbac_service.db import AsyncSessionLocal, create_schema, dispose_engine, get_db
from rbac_service.dependencies import get_app_settings
from rbac_service.exceptions import RBACServiceError
from rbac_service.logging_config import LoggingMiddleware, logger, setup_logging
from rbac_service.routers import (
    permission_routes,
    role_permission_routes,
    role_routes,
    user_role_routes,
    user_routes,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create the schema in development, optionally seed the default RBAC data,
    and release the engine's pool on shutdown.
    """
    logger.info("Application startup sequence initiated.")
    if settings.is_development():
        await create_schema()
        logger.info("Database schema ensured")

    if settings.BOOTSTRAP_ON_STARTUP:
        try:
            async with AsyncSessionLocal() as db:
                await bootstrap_rbac(db)
        except (RBACServiceError, SQLAlchemyError) as e:
            # The API still serves requests without the default data
            logger.error(f"Bootstrap failed: {e.__class__.__name__}: {e}")

    logger.info("Application startup complete.")

    yield

    logger.info("Application shutdown sequence initiated.")
    await dispose_engine()
    logger.info("Application shutdown complete.")


app = FastAPI(
    title="RBAC Service API",
    description="Administrative API for managing users, roles, permissions and their assignments.",
    version="1.0.0",
    root_path=settings.ROOT_PATH,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Admin - Permissions",
            "description": "Administrative operations for managing permissions.",
        },
        {
            "name": "Admin - Roles",
            "description": "Administrative operations for managing roles.",
        },
        {
            "name": "Admin - Role Permissions",
            "description": "Administrative operations for assigning permissions to roles.",
        },
        {
            "name": "Admin - Users",
            "description": "Administrative operations for managing users.",
        },
        {
            "name": "Admin - User Roles",
            "description": "Administrative operations for assigning roles to users.",
        },
    ],
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Track app startup time for uptime reporting in health checks
app.startup_time = time.time()

# Request logging sits inside the request ID middleware added by setup_logging
app.add_middleware(LoggingMiddleware)
setup_logging(app)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(permission_routes.router, prefix="/admin")
app.include_router(role_routes.router, prefix="/admin")
app.include_router(role_permission_routes.router, prefix="/admin")
app.include_router(user_routes.router, prefix="/admin")
app.include_router(user_role_routes.router, prefix="/admin")


# Exception handlers
@app.exception_handler(RBACServiceError)
async def service_error_handler(request: Request, exc: RBACServiceError):
    logger.warning(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def store_failure_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "A database error occurred", "kind": "store_failure"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"ValidationError: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
async def health(
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_app_settings),
):
    """Liveness plus a database round trip. Always 200; a failing database reports ``degraded``."""
    response = {
        "status": "ok",
        "version": app.version,
        "environment": app_settings.ENVIRONMENT.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.time() - app.startup_time, 2),
        "components": {"api": {"status": "ok"}},
    }

    try:
        start_time = time.time()
        await db.execute(text("SELECT 1"))
        response["components"]["database"] = {
            "status": "ok",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }
    except SQLAlchemyError as e:
        logger.error(f"Health check - Database error: {e.__class__.__name__}: {e}")
        response["components"]["database"] = {
            "status": "error",
            "message": "Database connection failed",
            "error_type": e.__class__.__name__,
        }
        response["status"] = "degraded"

    return JSONResponse(content=response, status_code=200)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rbac_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development(),
        log_level=settings.LOGGING_LEVEL.lower(),
    )
