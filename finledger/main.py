"""
FastAPI application and entry point.

  1. Lifespan: logging setup, table creation, engine disposal
  2. CORS middleware
  3. Exception handlers (domain errors -> typed JSON responses)
  4. Routers: auth and accounts at the top level, everything else scoped
     under /projects/{project_id}/...

Running locally:
    uvicorn finledger.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finledger.config import settings
from finledger.database import engine, Base
from finledger.exceptions import register_exception_handlers
from finledger.logging_config import setup_logging
from finledger.routers import (
    accounts,
    admin,
    auth,
    billing_cycles,
    budgets,
    card_purchases,
    categories,
    credits,
    projects,
    savings,
    templates,
    transactions,
    transfers,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging and create missing tables (use migrations
    for real deployments). Shutdown: dispose of the engine.
    """
    setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("startup", extra={"app": settings.APP_NAME, "version": settings.APP_VERSION})
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Personal and shared finance ledger: accounts, transfers, "
                "installment purchases, credits and billing cycles",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

PROJECT_SCOPE = "/projects/{project_id}"

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(projects.router, prefix="/projects", tags=["Projects"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])

app.include_router(categories.router, prefix=f"{PROJECT_SCOPE}/categories", tags=["Categories"])
app.include_router(transactions.router, prefix=f"{PROJECT_SCOPE}/transactions", tags=["Transactions"])
app.include_router(transfers.router, prefix=f"{PROJECT_SCOPE}/transfers", tags=["Transfers"])
app.include_router(card_purchases.router, prefix=f"{PROJECT_SCOPE}/card-purchases", tags=["Card purchases"])
app.include_router(credits.router, prefix=f"{PROJECT_SCOPE}/credits", tags=["Credits"])
app.include_router(billing_cycles.router, prefix=f"{PROJECT_SCOPE}/billing-cycles", tags=["Billing cycles"])
app.include_router(savings.router, prefix=f"{PROJECT_SCOPE}/savings", tags=["Savings"])
app.include_router(templates.router, prefix=f"{PROJECT_SCOPE}/templates", tags=["Templates"])
app.include_router(budgets.router, prefix=f"{PROJECT_SCOPE}/budgets", tags=["Budgets"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness check for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
