"""Tests for session utilities (sync) using SQLite temp file."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

import app.db.session as session_module
from app.db.models import Base, Document
from app.db.session import _to_async_url, _to_sync_url, get_sync_db


def _document(doc_id: str) -> Document:
    return Document(
        id=doc_id,
        tenant_id="tenant-1",
        title=f"Doc {doc_id}",
        filename=f"{doc_id}.pdf",
        content_type="application/pdf",
        file_size=10,
        object_key=f"tenant-1/{doc_id}/{doc_id}.pdf",
    )


@pytest.fixture(scope="function")
def configure_session(monkeypatch, tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'session.sqlite'}")
    Base.metadata.create_all(engine)
    test_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    monkeypatch.setattr(session_module, "SyncSessionLocal", test_session_local)
    yield engine
    engine.dispose()


def test_get_sync_db_commit_and_rollback(configure_session):
    # commit on success
    with get_sync_db() as db:
        db.add(_document("1"))
    with get_sync_db() as db:
        assert db.query(Document).count() == 1

    # rollback on exception
    with pytest.raises(RuntimeError):
        with get_sync_db() as db:
            db.add(_document("2"))
            raise RuntimeError("boom")
    with get_sync_db() as db:
        assert db.query(Document).filter_by(id="2").first() is None


def test_sqlite_connections_enforce_foreign_keys(configure_session):
    with configure_session.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
        ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ],
)
def test_to_async_url(url, expected):
    assert _to_async_url(url) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgresql+asyncpg://u:p@db:5432/app", "postgresql://u:p@db:5432/app"),
        ("sqlite+aiosqlite:///./local.db", "sqlite:///./local.db"),
        ("postgresql://u:p@db:5432/app", "postgresql://u:p@db:5432/app"),
    ],
)
def test_to_sync_url(url, expected):
    assert _to_sync_url(url) == expected
