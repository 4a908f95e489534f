import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import settings
from app.database import create_db_and_tables, session_factory
from app.logging_config import configure_logging
from app.queue.broker import QueueBroker
from app.routes import (
    activities,
    auth,
    exports,
    health,
    monitoring,
    payments,
    purchases,
    uploads,
    users,
    visas_admin,
    visas_public,
    webhooks,
)
from app.services.activity_logger import ActivityLogger
from app.services.cache import RedisCache
from app.services.storage import build_storage
from app.services.xendit_client import XenditClient
from app.utils.exceptions import register_exception_handlers
from app.workers.email_worker import EmailJobHandler
from app.workers.pool import WorkerPool

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()

    cache = RedisCache.from_settings(settings)
    cache.connect()

    broker = QueueBroker(settings.rabbitmq_url, enabled=settings.QUEUE_ENABLED)
    await broker.connect()

    activity_logger = ActivityLogger(
        session_factory,
        workers=settings.ACTIVITY_LOG_WORKERS,
        maxsize=settings.ACTIVITY_LOG_QUEUE_SIZE,
    )
    activity_logger.start()

    app.state.cache = cache
    app.state.broker = broker
    app.state.gateway = XenditClient()
    app.state.activity_logger = activity_logger
    app.state.storage = build_storage(settings)

    pool = WorkerPool(broker, EmailJobHandler(session_factory), settings.worker_concurrency)
    await pool.start()

    logger.info("Visa Desk API started (env=%s)", settings.ENV)
    yield

    logger.info("Shutting down")
    await pool.stop()
    activity_logger.close(timeout=5.0)
    await broker.close()
    cache.close()


def create_app() -> FastAPI:
    app = FastAPI(title="Visa Desk API", version=health.API_VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["System"])

    app.include_router(auth.router, prefix=API_PREFIX, tags=["Authentication"])
    app.include_router(users.router, prefix=API_PREFIX, tags=["Users"])
    app.include_router(visas_public.router, prefix=API_PREFIX, tags=["Visas"])
    app.include_router(purchases.router, prefix=API_PREFIX, tags=["Purchases"])
    app.include_router(payments.router, prefix=API_PREFIX, tags=["Payments"])
    app.include_router(webhooks.router, prefix=API_PREFIX, tags=["Webhooks"])
    app.include_router(uploads.router, prefix=API_PREFIX, tags=["Uploads"])
    app.include_router(exports.router, prefix=API_PREFIX, tags=["Exports"])
    app.include_router(activities.router, prefix=API_PREFIX, tags=["Activities"])
    app.include_router(monitoring.router, prefix=API_PREFIX, tags=["Monitoring"])
    app.include_router(visas_admin.router, prefix=f"{API_PREFIX}/admin", tags=["Admin Visas"])

    if settings.STORAGE_BACKEND == "local":
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    return app


app = create_app()
