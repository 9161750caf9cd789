"""FastAPI application entry point."""
from __future__ import annotations
import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qbank.core import config
from qbank.core.log import configure_logging
from qbank import container
from qbank.api import admin, auth, creator, explainer, gatherer, processor, questions, student, subscriptions

configure_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# App creation
# ------------------------------------------------------------------
app = FastAPI(
    title="Question Bank Workflow API",
    description="Multi-role review workflow for exam questions, with student practice and subscriptions",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    elapsed_ms = (time.time() - start_time) * 1000
    logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


# ------------------------------------------------------------------
# Error handlers
# ------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ------------------------------------------------------------------
# Startup / shutdown: database lifecycle, seed account, expiry sweep
# ------------------------------------------------------------------
@app.on_event("startup")
def on_startup():
    db = container.get_database()
    db.connect()
    db.init_schema()
    container.get_user_app_service().ensure_superadmin(config.SUPERADMIN_USERNAME, config.SUPERADMIN_PASSWORD)
    if config.SUBSCRIPTION_SWEEP_ENABLED:
        container.get_subscription_expiry_job().start()
    logger.info("Startup complete (database %s)", config.DATABASE_PATH)


@app.on_event("shutdown")
def on_shutdown():
    container.get_subscription_expiry_job().stop()
    container.get_database().close()


# ------------------------------------------------------------------
# Routers
# ------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(gatherer.router)
app.include_router(processor.router)
app.include_router(creator.router)
app.include_router(explainer.router)
app.include_router(questions.router)
app.include_router(student.router)
app.include_router(subscriptions.router)
app.include_router(subscriptions.payment_router)
app.include_router(subscriptions.cron_router)


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok", "database": container.get_database().is_connected}
