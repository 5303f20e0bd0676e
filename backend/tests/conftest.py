import ipaddress
import os

# Must be set before anything imports app.core.dependencies (the engine is built at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CAPTURE_BACKEND", "mock")
os.environ.setdefault("AI_CRITIQUE_PROVIDER", "mock")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.core.storage import BaseAssetStore, InMemoryAssetStore
from app.models.roast import Base
from app.services.ai.common.providers.mock import MockProvider
from app.services.ai.critique.service import CritiqueGenerator
from app.services.capture.backends import BaseCaptureBackend, MockBackend
from app.services.capture.service import CaptureOptions, ScreenshotAcquirer
from app.services.roast_service import RoastCommitter, RoastPipeline
from app.services.roast_store import RoastStore
from app.utils.rate_limit import rate_limiter

PUBLIC_ADDRESS = "93.184.216.34"


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Some tests mutate env vars or the cached Settings instance. Don't leak either across tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


def make_resolver(table=None, calls=None):
    """Fake DNS: IP literals resolve to themselves, other hosts via *table* (default: public)."""
    table = table or {}

    async def _resolve(host: str) -> list[str]:
        if calls is not None:
            calls.append(host)
        try:
            ipaddress.ip_address(host)
        except ValueError:
            if host in table:
                answer = table[host]
                if isinstance(answer, Exception):
                    raise answer
                return list(answer)
            return [PUBLIC_ADDRESS]
        return [host]

    return _resolve


class RecordingBackend(MockBackend):
    """Mock screenshots, counting calls; optionally raising *error* instead."""

    def __init__(self, error: BaseException | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.error = error
        self.calls: list[str] = []

    async def capture(self, url: str, **kwargs):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return await super().capture(url, **kwargs)


class FailingAssetStore(BaseAssetStore):
    def __init__(self, error: BaseException) -> None:
        self.error = error
        self.calls = 0

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        self.calls += 1
        raise self.error


@pytest.fixture
def roast_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield RoastStore(sessionmaker(bind=engine, autocommit=False, autoflush=False))
    engine.dispose()


@pytest.fixture
def make_pipeline(roast_store):
    """Build a pipeline from fakes; any part can be replaced per test."""

    def _make(
        *,
        backend: BaseCaptureBackend | None = None,
        assets: BaseAssetStore | None = None,
        provider=None,
        resolver=None,
        options: CaptureOptions | None = None,
    ) -> RoastPipeline:
        committer = RoastCommitter(
            assets=assets or InMemoryAssetStore(),
            critic=CritiqueGenerator(provider or MockProvider()),
            store=roast_store,
        )
        return RoastPipeline(
            acquirer=ScreenshotAcquirer(backend or RecordingBackend(), options or CaptureOptions(delay_seconds=0)),
            committer=committer,
            resolver=resolver or make_resolver(),
        )

    return _make


@pytest_asyncio.fixture
async def api_client(roast_store):
    """In-process ASGI client factory. Pass ``pipeline`` to override the roast pipeline."""
    from app.core.dependencies import get_pipeline, get_roast_store
    from app.main import app

    clients: list[httpx.AsyncClient] = []

    def _client(pipeline=None, *, client_ip: str = "203.0.113.10", raise_app_exceptions: bool = True):
        if pipeline is not None:
            app.dependency_overrides[get_pipeline] = lambda: pipeline
        app.dependency_overrides[get_roast_store] = lambda: roast_store
        transport = httpx.ASGITransport(
            app=app,
            client=(client_ip, 51234),
            raise_app_exceptions=raise_app_exceptions,
        )
        c = httpx.AsyncClient(transport=transport, base_url="http://test")
        clients.append(c)
        return c

    yield _client

    for c in clients:
        await c.aclose()
    app.dependency_overrides.clear()
