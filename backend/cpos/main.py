"""Expose the sale and inventory engine as a FastAPI app."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  registers every table on Base.metadata
from .database import Base, SessionLocal, engine
from .responses import engine_error_response
from .routers import inventory_router, sales_router
from .services import EngineError, SaleLedger

LOGGER = logging.getLogger(__name__)


def ensure_database_is_ready() -> None:
    """Create missing tables and seed the lookup tables before serving requests."""

    LOGGER.info("Ensuring database schema exists before serving requests")
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        SaleLedger.seed_lookups(db)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_database_is_ready()
    yield


app = FastAPI(title="POS Sale & Inventory Engine", lifespan=lifespan)


@app.exception_handler(EngineError)
async def handle_engine_error(_: Request, exc: EngineError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("Request failed with %s: %s", type(exc).__name__, exc)
    return engine_error_response(exc)


app.include_router(sales_router, prefix="/sales", tags=["sales"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])


@app.get("/", tags=["health"])
def read_root() -> dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}
