"""Record store interface shared by the SQLite and JSON file backends."""

from __future__ import annotations

import abc
from datetime import date
from typing import TYPE_CHECKING, List, Optional

from .models import Account, AlumniRecord, JobPosting, NewAccount

if TYPE_CHECKING:  # pragma: no cover
    from .config import Settings


def normalise_search_query(query: Optional[str]) -> str:
    """Return the lower-cased needle used to match alumni names and years."""

    return (query or "").strip().lower()


class RecordStore(abc.ABC):
    """Persistence gateway for accounts, job postings and alumni records.

    Implementations must enforce email uniqueness themselves and report it by
    raising :class:`~app.errors.ConflictError` from :meth:`insert_account`.
    Backend failures are raised as :class:`~app.errors.StorageError`.
    """

    @abc.abstractmethod
    def open(self) -> None:
        """Acquire backend resources and create the schema if needed."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release backend resources. Calling it twice is harmless."""

    @property
    @abc.abstractmethod
    def is_open(self) -> bool: ...

    def __enter__(self) -> "RecordStore":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Accounts
    @abc.abstractmethod
    def find_account_by_email(self, email: str) -> Optional[Account]: ...

    @abc.abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]: ...

    @abc.abstractmethod
    def insert_account(self, account: NewAccount) -> int: ...

    @abc.abstractmethod
    def list_accounts(self) -> List[Account]: ...

    # Job board
    @abc.abstractmethod
    def list_jobs(self, *, limit: Optional[int] = None, offset: int = 0) -> List[JobPosting]: ...

    @abc.abstractmethod
    def insert_job(self, *, title: str, company: str, location: str, posted_date: date) -> int: ...

    # Alumni directory
    @abc.abstractmethod
    def search_alumni(self, query: str) -> List[AlumniRecord]: ...

    @abc.abstractmethod
    def insert_alumni(
        self,
        *,
        name: str,
        graduation_year: Optional[int] = None,
        major: Optional[str] = None,
    ) -> int: ...


def open_store(settings: "Settings") -> RecordStore:
    """Construct and open the store selected by ``settings.storage_backend``."""

    store: RecordStore
    if settings.storage_backend == "json":
        from .filestore import JSONFileStore

        store = JSONFileStore(settings.data_dir)
    elif settings.storage_backend == "sqlite":
        from .database import Database

        store = Database(settings.database_path, timeout=settings.storage_timeout)
    else:
        raise ValueError(f"Unsupported storage backend '{settings.storage_backend}'")
    store.open()
    return store


__all__ = ["RecordStore", "normalise_search_query", "open_store"]
