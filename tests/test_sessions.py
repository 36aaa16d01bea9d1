from __future__ import annotations

from datetime import timedelta

import pytest

from app.sessions import SessionManager


def test_issue_returns_random_token_with_fixed_expiry() -> None:
    manager = SessionManager(ttl=timedelta(hours=1))

    first = manager.issue(1)
    second = manager.issue(1)

    assert first.token != second.token
    assert len(first.token) >= 40
    assert first.expires_at - first.issued_at == timedelta(hours=1)
    assert manager.cookie_max_age == 3600
    assert manager.resolve(first.token) == 1
    assert manager.resolve(second.token) == 1


def test_resolve_rejects_unknown_and_empty_tokens() -> None:
    manager = SessionManager()

    assert manager.resolve("") is None
    assert manager.resolve("not-a-session") is None


def test_expired_tokens_are_rejected_and_dropped(monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(ttl=timedelta(minutes=5))
    session = manager.issue(42)

    monkeypatch.setattr(manager, "_now", lambda: session.expires_at)

    assert manager.resolve(session.token) is None
    assert len(manager) == 0


def test_expiry_does_not_slide_on_use(monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(ttl=timedelta(minutes=5))
    session = manager.issue(42)

    monkeypatch.setattr(manager, "_now", lambda: session.expires_at - timedelta(seconds=1))
    assert manager.resolve(session.token) == 42

    monkeypatch.setattr(manager, "_now", lambda: session.expires_at + timedelta(seconds=1))
    assert manager.resolve(session.token) is None


def test_destroy_revokes_token() -> None:
    manager = SessionManager()
    session = manager.issue(3)

    manager.destroy(session.token)
    manager.destroy(session.token)

    assert manager.resolve(session.token) is None


def test_issuing_purges_expired_sessions(monkeypatch: pytest.MonkeyPatch) -> None:
    manager = SessionManager(ttl=timedelta(minutes=5))
    stale = manager.issue(1)

    monkeypatch.setattr(manager, "_now", lambda: stale.expires_at + timedelta(minutes=1))
    fresh = manager.issue(2)

    assert len(manager) == 1
    assert manager.resolve(fresh.token) == 2


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SessionManager(ttl=timedelta(0))
