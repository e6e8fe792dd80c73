import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.core.logging import setup_logging
from backoffice.core.broker import broker
from backoffice.core.config import settings
from backoffice.core.database import engine, async_session_maker
from backoffice.core.exceptions import BackofficeError
from backoffice.models import Base
from backoffice.api.health import router as health_router
from backoffice.api.orders import router as orders_router
from backoffice.api.products import router as products_router
from backoffice.api.stats import router as stats_router
from backoffice.services.outbox_processor import OutboxProcessor

logger = logging.getLogger(__name__)

outbox_processor = OutboxProcessor(async_session_maker)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await broker.connect()
    await outbox_processor.start()

    yield

    await outbox_processor.stop()
    await broker.close()
    await engine.dispose()


app = FastAPI(
    title="Back-office Service",
    description="Catalog, order placement and inventory for the shop back office",
    version="0.1.0",
    lifespan=lifespan
)

cors_origins = settings.cors_origins.split(",") if settings.cors_origins else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BackofficeError)
async def backoffice_error_handler(request: Request, exc: BackofficeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(health_router)
app.include_router(orders_router)
app.include_router(products_router)
app.include_router(stats_router)
