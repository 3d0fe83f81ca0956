import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import database
from shared.config.settings import APP_DEBUG, NOTIFIER_MODE, SERVICE_NAME
from shared.errors import StorefrontError
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models
from services.product_service import models as product_models
from services.order_service import models as order_models
from services.payment_service import models as payment_models
from services.notification_service import models as notification_models

from services.auth_service.router import router as auth_router
from services.product_service.router import router as product_router
from services.order_service.router import router as order_router, admin_router as order_admin_router
from services.payment_service.router import router as payment_router
from services.notification_service.dispatcher import dispatcher

logger = structlog.get_logger(__name__)

app = FastAPI(title="Storefront API", version="1.0.0")

# Structured logs, OTLP traces and /metrics
setup_observability(app, SERVICE_NAME)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def _error_body(message: str, error: str | None = None, exc: Exception | None = None) -> dict:
    body = {"success": False, "message": message}
    if error:
        body["error"] = error
    if APP_DEBUG and exc is not None:
        body["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, type(exc).__name__, exc),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {field} {first.get('msg', '')}".strip() if field else "Invalid request"
    return JSONResponse(status_code=400, content=_error_body(message, "ValidationError"))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Internal server error", exc=exc))


app.include_router(auth_router)
app.include_router(product_router)
app.include_router(order_router)
app.include_router(order_admin_router)
app.include_router(payment_router)


@app.get("/api/health")
async def health_check():
    return {"service": SERVICE_NAME, "status": "running"}


@app.on_event("startup")
async def startup_event():
    await database.create_all()
    if NOTIFIER_MODE == "inline":
        dispatcher.start()
    logger.info("storefront_started", notifier_mode=NOTIFIER_MODE)


@app.on_event("shutdown")
async def shutdown_event():
    await dispatcher.stop()
    await database.dispose()
