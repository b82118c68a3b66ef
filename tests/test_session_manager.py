from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import pytest

from models.errors import SessionExpired
from services.session.session_manager import SessionManager
from services.session.session_store import SessionStore


class FakeRefresher:
    """Stands in for the OAuth exchange and counts how often it runs."""

    def __init__(self, store: SessionStore, new_token: Optional[str], delay: float = 0.0) -> None:
        self.store = store
        self.new_token = new_token
        self.delay = delay
        self.calls: List[int] = []

    async def refresh(self) -> bool:
        self.calls.append(1)
        await asyncio.sleep(self.delay)
        if not self.new_token:
            return False
        self.store.set_access_token(self.new_token)
        return True


def _manager(tmp_path: Path, access_token: Optional[str], new_token: Optional[str], delay: float = 0.0):
    store = SessionStore(tmp_path / "session.json", access_token=access_token, exchange_token="exchange")
    refresher = FakeRefresher(store, new_token, delay)
    return SessionManager(store, refresher), refresher


def test_fresh_token_skips_refresh(tmp_path: Path, make_token) -> None:
    manager, refresher = _manager(tmp_path, make_token(expires_in=3 * 24 * 3600), make_token())
    asyncio.run(manager.ensure_session())
    assert refresher.calls == []


def test_stale_but_valid_token_is_refreshed(tmp_path: Path, make_token) -> None:
    stale = make_token(expires_in=3600)
    fresh = make_token(expires_in=5 * 24 * 3600, sub="fresh")
    manager, refresher = _manager(tmp_path, stale, fresh)

    asyncio.run(manager.ensure_session())
    assert len(refresher.calls) == 1
    assert manager.access_token == fresh


def test_stale_token_survives_failed_refresh(tmp_path: Path, make_token) -> None:
    stale = make_token(expires_in=3600)
    manager, refresher = _manager(tmp_path, stale, None)

    asyncio.run(manager.ensure_session())
    assert len(refresher.calls) == 1
    assert manager.access_token == stale


def test_expired_token_without_refresh_raises(tmp_path: Path, make_token) -> None:
    manager, _ = _manager(tmp_path, make_token(expires_in=-60), None)
    with pytest.raises(SessionExpired) as excinfo:
        asyncio.run(manager.ensure_session())
    assert "POST /session" in excinfo.value.message
    assert excinfo.value.status_code == 500


def test_missing_token_is_loaded_from_cache(tmp_path: Path, make_token) -> None:
    cached = make_token(sub="cached")
    SessionStore(tmp_path / "session.json", access_token=cached).save()

    manager, refresher = _manager(tmp_path, None, None)
    asyncio.run(manager.ensure_session())
    assert manager.access_token == cached
    assert refresher.calls == []


def test_concurrent_callers_share_one_refresh(tmp_path: Path, make_token) -> None:
    fresh = make_token(expires_in=5 * 24 * 3600)
    manager, refresher = _manager(tmp_path, make_token(expires_in=-60), fresh, delay=0.05)

    async def run() -> None:
        await asyncio.gather(*(manager.ensure_session() for _ in range(5)))

    asyncio.run(run())
    assert len(refresher.calls) == 1
    assert manager.access_token == fresh


def test_initialize_refreshes_stale_token(tmp_path: Path, make_token) -> None:
    fresh = make_token(expires_in=5 * 24 * 3600)
    manager, refresher = _manager(tmp_path, make_token(expires_in=600), fresh)

    info = asyncio.run(manager.initialize())
    assert len(refresher.calls) == 1
    assert info.valid is True
    assert info.needs_refresh is False


def test_set_access_token_returns_fresh_info(tmp_path: Path, make_token) -> None:
    manager, _ = _manager(tmp_path, None, None)
    info = manager.set_access_token(make_token(sub="manual"))
    assert info.valid is True
    assert info.subject == "manual"
