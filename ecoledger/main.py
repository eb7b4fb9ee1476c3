"""EcoLedger FastAPI application."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ecoledger import __version__
from ecoledger.database import close_db, init_db
from ecoledger.exceptions import EcoLedgerError
from ecoledger.logging_config import (
    RequestContextMiddleware,
    configure_logging_from_env,
    get_logger,
)
from ecoledger.schemas import ErrorResponse

logger = get_logger(__name__)

ERROR_STATUS_CODES: dict[str, int] = {
    "task_not_found": 404,
    "user_not_found": 404,
    "reward_not_found": 404,
    "invalid_transition": 400,
    "invalid_amount": 422,
    "unknown_transaction_type": 422,
    "invalid_verification": 422,
    "invalid_limit": 422,
    "already_completed": 409,
    "insufficient_balance": 402,
    "actor_resolution_failed": 503,
    "store_unavailable": 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configure logging and the database."""
    configure_logging_from_env()

    logger.info("starting_database_init")
    await init_db(create_tables=os.getenv("DATABASE_CREATE_TABLES", "true") == "true")

    logger.info("application_started")
    yield

    logger.info("shutting_down")
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title="EcoLedger",
    description="Waste reporting, collection tasks and a reward point ledger",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(EcoLedgerError)
async def ecoledger_error_handler(request: Request, exc: EcoLedgerError):
    status_code = ERROR_STATUS_CODES.get(exc.error_type, 400)
    if status_code >= 500:
        logger.error("request_failed", error_type=exc.error_type, detail=exc.message)
    else:
        logger.info("request_rejected", error_type=exc.error_type, detail=exc.message)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error_type=exc.error_type, detail=exc.message).model_dump(),
    )


# --- Routers ---
from ecoledger.routes.admin_tasks import router as admin_tasks_router  # noqa: E402
from ecoledger.routes.auth import router as auth_router  # noqa: E402
from ecoledger.routes.ledger import router as ledger_router  # noqa: E402
from ecoledger.routes.notifications import router as notifications_router  # noqa: E402
from ecoledger.routes.reports import router as reports_router  # noqa: E402
from ecoledger.routes.users import router as users_router  # noqa: E402

app.include_router(auth_router)
app.include_router(reports_router)
app.include_router(admin_tasks_router)
app.include_router(ledger_router)
app.include_router(notifications_router)
app.include_router(users_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "ecoledger"}
