from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from signal_app.db.base import get_db
from signal_app.core.config import settings
from signal_app.core.logging import get_logger
from signal_app.routers import days as days_router
from signal_app.routers import entries as entries_router
from signal_app.routers import timer as timer_router
from signal_app.routers import insights as insights_router
from signal_app.core.errors import (
    SignalException,
    signal_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Signal API",
    description=(
        "**Signal vs. wasted time ledger**\n\n"
        "Log what each waking day is spent on, tag entries as signal or wasted "
        "time, and keep exact per-day totals. A session timer records focused "
        "work straight into the ledger.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(SignalException, signal_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(days_router.router)
app.include_router(entries_router.router)
app.include_router(timer_router.router)
app.include_router(insights_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as exc:
        logger.warning("health check: database unreachable: %s", exc)
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
