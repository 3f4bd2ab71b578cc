"""
Module: main.py
Description: FastAPI application entry point for the order tracking service.

Wires the order hook and delivery log routers, the health check and the
error handlers, and exposes the app as an AWS Lambda handler via Mangum.
"""

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from mangum import Mangum

from woo_matomo.config.settings import Settings, get_settings
from woo_matomo.handlers.logs import router as logs_router
from woo_matomo.handlers.orders import router as orders_router
from woo_matomo.tracking.tracker import drain_background_deliveries
from woo_matomo.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def apply_log_level() -> str:
    """Apply LOG_LEVEL; runs at import because Mangum skips the startup hook."""
    level = get_settings().log_level
    configure_logging(level)
    return level


apply_log_level()

app = FastAPI(
    title="WooCommerce Matomo Tracking",
    description="Forwards WooCommerce order events to Matomo and audits every delivery",
    version="1.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(orders_router)
app.include_router(logs_router)


@app.get("/health")
async def health_check(settings: Settings = Depends(get_settings)):
    """Health check endpoint; reports whether the Matomo connection is configured."""
    config = settings.delivery_config()

    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.stage,
        "tracking_enabled": config.tracking_enabled,
        "matomo_configured": config.is_configured()
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Log HTTP exceptions and return structured error responses."""
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "message": exc.detail,
                "type": "http_exception"
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions and return a generic error response."""
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": 500,
                "message": "Internal server error",
                "type": "internal_error"
            }
        }
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event handler."""
    settings = get_settings()
    apply_log_level()
    logger.info(
        "Starting order tracking service",
        version=settings.app_version,
        stage=settings.stage,
        region=settings.aws_region
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Wait for background deliveries before shutting down."""
    pending = await drain_background_deliveries()
    logger.info("Shutting down order tracking service", drained_deliveries=pending)


# Lambda handler
handler = Mangum(app, lifespan="off")
