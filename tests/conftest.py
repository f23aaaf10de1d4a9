"""Pytest configuration and fixtures."""

import os

# Set test environment BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["API_TOKEN"] = ""
os.environ["CONTRACTS_ENABLED"] = "true"

from contextlib import contextmanager
from types import SimpleNamespace
from typing import Mapping
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.db.models import Document
from app.db.session import Base, get_db
from app.deps import get_storage
from app.main import app
from app.storage import StorageError
from client.context import ClientContext
from client.settings import ClientSettings

TENANT_ID = "00000000-0000-0000-0000-000000000001"


class InMemoryStorage:
    """DocumentStore kept in a dict, for API and activity tests."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.fail_puts = False

    def put_bytes(self, bucket, key, data, *, content_type=None, metadata=None) -> str:
        if self.fail_puts:
            raise StorageError("put", bucket, key, "connection refused")
        self.objects[(bucket, key)] = bytes(data)
        self.content_types[(bucket, key)] = content_type or "application/octet-stream"
        return f"{bucket}/{key}"

    def get_bytes(self, bucket, key) -> tuple[bytes, Mapping[str, str]]:
        try:
            return self.objects[(bucket, key)], {}
        except KeyError:
            raise StorageError("get", bucket, key, "NoSuchKey") from None

    def remove(self, bucket, key) -> None:
        self.objects.pop((bucket, key), None)

    def ensure_bucket(self, name) -> None:
        return None

    def bucket_exists(self, name) -> bool:
        return True


@pytest.fixture(scope="function")
def sqlite_sessionmaker(tmp_path):
    """Create a SQLite database with schema for testing."""
    db_path = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield SessionLocal
    engine.dispose()


@contextmanager
def patch_db_session(sessionmaker_):
    """Point worker activities at a test sessionmaker."""

    @contextmanager
    def test_get_db():
        session = sessionmaker_()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    with patch("worker.activities.get_sync_db", test_get_db):
        yield


@pytest.fixture
def mock_db_session():
    """Create a mock async database session."""
    mock_session = MagicMock()
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.commit = AsyncMock()
    return mock_session


@pytest.fixture
def mock_temporal():
    """Create a mock Temporal client."""
    return AsyncMock()


@pytest.fixture
def mock_storage():
    """Create a mock storage client."""
    storage = MagicMock()
    storage.put_bytes = MagicMock()
    storage.get_bytes = MagicMock(return_value=(b"test", {}))
    return storage


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def api_env(tmp_path, memory_storage, mock_temporal):
    """App wired to a SQLite file, in-memory storage and a mock Temporal client.

    The schema is created with a sync engine; routes use an aiosqlite engine
    on the same file. The sync ``sessionmaker`` is exposed for seeding and
    for running worker activities against the same data.
    """
    db_path = tmp_path / "api.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)

    # NullPool: TestClient may run each request on a different event loop
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: memory_storage
    app.state.temporal = mock_temporal
    app.state.minio = None

    yield SimpleNamespace(
        app=app,
        storage=memory_storage,
        temporal=mock_temporal,
        sessionmaker=sessionmaker(bind=sync_engine, autocommit=False, autoflush=False),
    )

    app.dependency_overrides.clear()
    sync_engine.dispose()


@pytest.fixture
def api_client(api_env):
    """TestClient without lifespan, so no Temporal or MinIO connection is attempted."""
    return TestClient(api_env.app, raise_server_exceptions=False)


@pytest.fixture
def seed_document(api_env):
    """Insert a document row (and its bytes) directly; returns its id."""

    def _seed(title="Vendor MSA", filename="MSA.pdf", content=b"%PDF-1.4 test", content_type="application/pdf"):
        with api_env.sessionmaker() as session:
            doc = Document(
                tenant_id=TENANT_ID,
                title=title,
                filename=filename,
                content_type=content_type,
                file_size=len(content),
                bucket="documents",
                object_key=f"{TENANT_ID}/{filename}",
                tags=[],
            )
            session.add(doc)
            session.commit()
            api_env.storage.objects[("documents", doc.object_key)] = content
            return doc.id

    return _seed


@pytest_asyncio.fixture
async def asgi_ctx(api_env):
    """ClientContext talking to the app in-process over ASGI."""
    ctx = ClientContext(
        ClientSettings(base_url="http://testserver", poll_interval_s=0.01, poll_max_wait_s=1.0),
        transport=httpx.ASGITransport(app=api_env.app),
    )
    yield ctx
    await ctx.aclose()
