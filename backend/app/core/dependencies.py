import logging
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings, is_production
from app.core.storage import BaseAssetStore, InMemoryAssetStore, SupabaseAssetStore
from app.models.roast import Base
from app.services.ai.critique.service import CritiqueGenerator
from app.services.capture.backends import get_capture_backend
from app.services.capture.service import CaptureOptions, ScreenshotAcquirer
from app.services.roast_service import RoastCommitter, RoastPipeline
from app.services.roast_store import RoastStore

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./roasts.db"

settings = get_settings()

database_url = settings.database_url or DEFAULT_DATABASE_URL
connect_args: dict[str, object] = {}
engine_kwargs: dict[str, object] = {"pool_pre_ping": True}

if database_url.startswith("sqlite"):
    # Sync DB work runs in the threadpool, so the connection must be usable across threads.
    connect_args = {"check_same_thread": False, "timeout": 30}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees its own empty database.
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)

if database_url.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create the ``roasts`` table if it does not exist yet."""
    Base.metadata.create_all(bind=engine)


def get_roast_store() -> RoastStore:
    return RoastStore(SessionLocal)


def _build_asset_store() -> BaseAssetStore:
    current = get_settings()
    if current.supabase_url and (current.supabase_service_role_key or current.supabase_key):
        return SupabaseAssetStore.from_settings()
    if is_production():
        raise RuntimeError("Supabase storage is not configured")
    logger.warning("Supabase storage not configured; screenshots are kept in process memory")
    return InMemoryAssetStore()


@lru_cache
def get_pipeline() -> RoastPipeline:
    current = get_settings()
    acquirer = ScreenshotAcquirer(
        get_capture_backend(current.capture_backend),
        CaptureOptions.from_settings(current),
    )
    committer = RoastCommitter(
        assets=_build_asset_store(),
        critic=CritiqueGenerator.from_settings(),
        store=get_roast_store(),
    )
    return RoastPipeline(acquirer=acquirer, committer=committer)
