import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse, Response

from order_api.config import settings
from order_api.db import PostgresStore, close_pool, get_pool, init_schema, seed_demo_data
from order_api.logging_config import configure_logging
from order_api.metrics import get_metrics_bytes, get_metrics_content_type
from order_api.routes import analytics, orders
from order_api.store import InMemoryDatabase, InMemoryStore, seed_in_memory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    if settings.store_backend == "postgres":
        pool = await get_pool()
        await init_schema(pool)
        if settings.seed_demo_data:
            await seed_demo_data(pool)
        app.state.store_factory = lambda: PostgresStore(pool)
    else:
        database = InMemoryDatabase()
        if settings.seed_demo_data:
            seed_in_memory(database)
        app.state.database = database
        app.state.store_factory = lambda: InMemoryStore(app.state.database)
    logger.info("Order API started with %s store", settings.store_backend)
    yield
    if settings.store_backend == "postgres":
        await close_pool()


app = FastAPI(title="Order Management API", lifespan=lifespan)
app.include_router(orders.router)
app.include_router(analytics.router)


@app.get("/", include_in_schema=False)
async def root() -> RedirectResponse:
    return RedirectResponse(url="/docs", status_code=301)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint: orders created, discounts, status transitions, unexpected errors."""
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )
