"""Order fulfillment FastAPI application.

Fulfillment requests are handled synchronously: the response is returned
once the order is Completed or Failed.

Usage:
    python src/server.py --port 8000 --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fulfillment.config import FulfillmentSettings
from fulfillment.domain import fulfillment
from fulfillment.pipeline import build_fulfillment_service
from fulfillment.utils.logging import configure_logging
from protean.integrations.fastapi import register_exception_handlers

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the config overlay; the default keeps everything in memory.
configure_logging()
fulfillment.init()

settings = FulfillmentSettings.from_env()
fulfillment_service = build_fulfillment_service(fulfillment, settings)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    fulfillment_service.shutdown()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Order Fulfillment API",
    description="Drives paid orders through reservation, payment confirmation and shipment",
    lifespan=lifespan,
)
app.state.fulfillment = fulfillment_service

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the Protean domain context for each request."""
    with fulfillment.domain_context():
        return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from fulfillment.api import order_router  # noqa: E402

app.include_router(order_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": fulfillment.name,
            "carrier": settings.default_carrier,
        }
    )
