# smartsupply/main.py
from dotenv import load_dotenv

# Load .env BEFORE anything reads settings
load_dotenv()

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .api.customers import main as customers_api
from .core.config import Settings, configure_logging, get_settings
from .db.customers_db import CustomerStore
from .services.customer_cache import CustomerCache
from .services.directory_client import DirectoryClient
from .services.sync_job import build_sync_scheduler

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[CustomerStore] = None,
    directory: Optional[DirectoryClient] = None,
) -> FastAPI:
    """
    Build the API. The customer cache is created once per app lifetime in
    the lifespan handler and shared through app.state.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        directory_client = directory or DirectoryClient(
            settings.api_base_url, timeout=settings.api_timeout_seconds
        )
        customer_store = store or CustomerStore(settings.cache_database_url)

        async with directory_client:
            cache = CustomerCache(directory_client, customer_store, settings)
            await cache.start()
            app.state.customer_cache = cache

            scheduler = None
            if settings.background_sync_enabled:
                scheduler = build_sync_scheduler(cache, settings)
                scheduler.start()
            logger.info("✅ Customer cache started")

            try:
                yield
            finally:
                if scheduler is not None:
                    scheduler.shutdown(wait=False)
                await cache.close()
                app.state.customer_cache = None
                logger.info("Customer cache stopped")

    app = FastAPI(title="SmartSupply Customer Cache", version="0.1.0", lifespan=lifespan)
    app.include_router(customers_api.router, prefix="/api", tags=["Customers"])
    return app


_settings = get_settings()
configure_logging(_settings.log_level)
app = create_app(_settings)
