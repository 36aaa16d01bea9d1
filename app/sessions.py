"""Session issuing and validation for signed-in alumni."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .models import IssuedSession

SESSION_COOKIE_NAME = "alumni_session"


@dataclass
class _SessionRecord:
    account_id: int
    expires_at: datetime


class SessionManager:
    """Issue, validate, and revoke random bearer tokens with a fixed lifetime."""

    def __init__(self, *, ttl: timedelta = timedelta(hours=1)) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Session TTL must be positive")
        self._ttl = ttl
        self._sessions: Dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def cookie_max_age(self) -> int:
        return int(self._ttl.total_seconds())

    def issue(self, account_id: int) -> IssuedSession:
        token = secrets.token_urlsafe(32)
        issued_at = self._now()
        expires_at = issued_at + self._ttl
        with self._lock:
            self._purge_expired(issued_at)
            self._sessions[token] = _SessionRecord(account_id=account_id, expires_at=expires_at)
        return IssuedSession(
            token=token,
            account_id=account_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def resolve(self, token: str) -> Optional[int]:
        if not token:
            return None
        now = self._now()
        with self._lock:
            record = self._sessions.get(token)
            if record is None:
                return None
            if record.expires_at <= now:
                self._sessions.pop(token, None)
                return None
            return record.account_id

    def destroy(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _purge_expired(self, now: datetime) -> None:
        expired = [token for token, record in self._sessions.items() if record.expires_at <= now]
        for token in expired:
            del self._sessions[token]

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["SESSION_COOKIE_NAME", "SessionManager"]
