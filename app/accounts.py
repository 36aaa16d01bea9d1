"""Registration and login flows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ConflictError, InvalidCredentials, ValidationError
from .models import Account, IssuedSession, NewAccount
from .passwords import PasswordHasher
from .sessions import SessionManager
from .storage import RecordStore

logger = logging.getLogger("alumni.accounts")


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


@dataclass(frozen=True)
class Registration:
    name: Optional[str]
    email: Optional[str]
    password: Optional[str]
    graduation_year: Optional[int] = None
    major: Optional[str] = None


class AccountService:
    """Compose the record store, password hasher and session manager."""

    def __init__(
        self,
        store: RecordStore,
        hasher: PasswordHasher,
        sessions: SessionManager,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._sessions = sessions

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def register(self, registration: Registration) -> Account:
        """Create an account and return it.

        The lookup before the insert only short-circuits the common duplicate
        case; the store's own uniqueness check decides concurrent races.
        """

        name = _clean(registration.name)
        email = _clean(registration.email)
        password = registration.password or ""

        missing = [
            field
            for field, value in (("name", name), ("email", email), ("password", password.strip()))
            if not value
        ]
        if missing:
            raise ValidationError.missing(missing)

        if self._store.find_account_by_email(email) is not None:
            raise ConflictError("An account with that email already exists")

        major = _clean(registration.major) or None
        account_id = self._store.insert_account(
            NewAccount(
                name=name,
                email=email,
                password_hash=self._hasher.hash(password),
                graduation_year=registration.graduation_year,
                major=major,
            )
        )
        logger.info("Registered account %s", account_id)

        account = self._store.get_account(account_id)
        if account is None:
            raise RuntimeError(f"Account {account_id} vanished after creation")
        return account

    def login(self, email: Optional[str], password: Optional[str]) -> IssuedSession:
        email = _clean(email)
        password = password or ""

        missing = [field for field, value in (("email", email), ("password", password)) if not value]
        if missing:
            raise ValidationError.missing(missing)

        account = self._store.find_account_by_email(email)
        if account is None:
            # Unknown emails must take as long as a wrong password.
            verified = self._hasher.dummy_verify()
        else:
            verified = self._hasher.verify(password, account.password_hash)
        if not verified:
            logger.warning("Failed login attempt for %s", email)
            raise InvalidCredentials()

        session = self._sessions.issue(account.id)
        logger.info("Account %s signed in", account.id)
        return session

    def current_account(self, token: Optional[str]) -> Optional[Account]:
        """Return the account behind a session token, revoking tokens for missing accounts."""

        if not token:
            return None
        account_id = self._sessions.resolve(token)
        if account_id is None:
            return None
        account = self._store.get_account(account_id)
        if account is None:
            self._sessions.destroy(token)
        return account

    def logout(self, token: Optional[str]) -> None:
        if token:
            self._sessions.destroy(token)


__all__ = ["AccountService", "Registration"]
