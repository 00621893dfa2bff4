"""
Main FastAPI application for the flow document compiler.

Features:
1. Component catalog and default factory endpoints (/api/v1/components)
2. Flow serialize / deserialize / validate / request endpoints (/api/v1/flows)
3. Structured logging with correlation tracking
4. Health and liveness checks
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uuid
import time

from flow_service.config import settings
from flow_service.core.exceptions import (
    FlowCompilerError,
    ImmutableFieldChanged,
    MalformedDocument,
    MalformedJson,
    UnknownComponentType,
    ValidationFailed,
)
from flow_service.core.logger import setup_logging
from flow_service.api.v1.components import ComponentNotFound
from flow_service.utils.logging import get_logger, log_context

# Import routers
from flow_service.api.v1 import health, components, flows

logger = get_logger(__name__)

# Most specific class first
ERROR_STATUS_CODES = (
    (ComponentNotFound, status.HTTP_404_NOT_FOUND),
    (MalformedJson, status.HTTP_400_BAD_REQUEST),
    (MalformedDocument, status.HTTP_400_BAD_REQUEST),
    (UnknownComponentType, status.HTTP_400_BAD_REQUEST),
    (ImmutableFieldChanged, status.HTTP_409_CONFLICT),
    (ValidationFailed, 422),
)


def status_code_for(exc: FlowCompilerError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


# ============================================================================
# APPLICATION LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan with structured logging"""

    setup_logging()

    with log_context(correlation_id=str(uuid.uuid4()), operation="startup"):
        logger.info(
            "app.startup.completed",
            extra={
                "service": settings.app_name,
                "version": settings.app_version,
                "flow_json_version": settings.flow_json_version,
                "debug": settings.debug
            }
        )

    yield

    with log_context(correlation_id=str(uuid.uuid4()), operation="shutdown"):
        logger.info("app.shutdown.completed")


# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title=settings.api_title,
    version=settings.app_version,
    description="Compiles editor flow documents to and from platform flow JSON",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# REQUEST/RESPONSE LOGGING MIDDLEWARE
# ============================================================================

@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Log all HTTP requests with correlation tracking"""

    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

    start_time = time.time()

    with log_context(
        correlation_id=correlation_id,
        endpoint=request.url.path,
        method=request.method
    ):
        logger.info(
            "http.request.received",
            extra={
                "path": request.url.path,
                "method": request.method,
                "client_ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent")
            }
        )

        try:
            response = await call_next(request)

            duration_ms = (time.time() - start_time) * 1000

            logger.performance(
                "http.request.completed",
                duration_ms=duration_ms,
                extra={
                    "status_code": response.status_code,
                    "path": request.url.path,
                    "method": request.method
                }
            )

            response.headers["X-Correlation-ID"] = correlation_id

            return response

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000

            logger.error(
                "http.request.failed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": duration_ms
                },
                exc_info=e
            )
            raise


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(FlowCompilerError)
async def flow_compiler_exception_handler(request: Request, exc: FlowCompilerError):
    """Compiler errors become `{error, message, details}` bodies"""

    status_code = status_code_for(exc)
    logger.warning(
        "app.exception.compiler",
        extra={
            "path": request.url.path,
            "error": exc.error_code,
            "status_code": status_code
        }
    )

    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler with structured logging"""

    logger.error(
        "app.exception.unhandled",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__
        },
        exc_info=exc
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "correlation_id": request.headers.get("X-Correlation-ID", "unknown")
        }
    )


# ============================================================================
# ROUTERS
# ============================================================================

# Health checks
app.include_router(
    health.router,
    tags=["Health"]
)

# Component catalog and defaults
app.include_router(
    components.router,
    prefix="/api/v1",
    tags=["Components"]
)

# Flow compiler
app.include_router(
    flows.router,
    prefix="/api/v1",
    tags=["Flows"]
)


# ============================================================================
# ROOT ENDPOINT
# ============================================================================

@app.get("/")
async def root():
    """Root endpoint with service info"""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "flow_json_version": settings.flow_json_version,
        "status": "running",
        "docs": "/docs",
        "health": {
            "health": "/health",
            "liveness": "/health/live"
        },
        "api": {
            "components": "GET /api/v1/components",
            "default_component": "POST /api/v1/components/{type}/default",
            "default_screen": "GET /api/v1/screens/default",
            "serialize": "POST /api/v1/flows/serialize",
            "deserialize": "POST /api/v1/flows/deserialize",
            "validate": "POST /api/v1/flows/validate",
            "create_request": "POST /api/v1/flows/requests/create",
            "update_request": "POST /api/v1/flows/requests/update"
        }
    }


# ============================================================================
# DEVELOPMENT SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    logger.info(
        "app.dev_server.starting",
        extra={
            "host": "0.0.0.0",
            "port": 8000,
            "reload": settings.debug
        }
    )

    uvicorn.run(
        "flow_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
