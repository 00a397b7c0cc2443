from contextlib import asynccontextmanager

from fastapi import FastAPI
from .cache import MemoryCache
from .config import get_settings
from .database import create_tables
from .logging_config import configure_logging
from .storage import LocalFileStorage
from .api import router as api_router

settings = get_settings()
configure_logging(settings.log_level)

# Ensure tables exist at startup (safe for SQLite/PoC)
create_tables()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.cache.clear()


app = FastAPI(title="tickerfeed", version="0.1.0", lifespan=lifespan)
app.state.cache = MemoryCache(default_ttl=settings.history_cache_ttl)
app.state.storage = LocalFileStorage(settings.storage_root)
app.include_router(api_router)
