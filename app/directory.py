"""Job board listing and alumni tracer search."""

from __future__ import annotations

from typing import List, Optional

from .errors import ValidationError
from .models import AlumniRecord, JobPosting
from .storage import RecordStore

MAX_PAGE_SIZE = 100


class DirectoryService:
    """Read-only queries against job postings and alumni records."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list_jobs(self, *, limit: Optional[int] = None, offset: int = 0) -> List[JobPosting]:
        invalid = []
        if limit is not None and not 1 <= limit <= MAX_PAGE_SIZE:
            invalid.append("limit")
        if offset < 0:
            invalid.append("offset")
        if invalid:
            raise ValidationError(
                f"limit must be between 1 and {MAX_PAGE_SIZE} and offset must not be negative",
                invalid,
            )
        return self._store.list_jobs(limit=limit, offset=offset)

    def search_alumni(self, query: Optional[str]) -> List[AlumniRecord]:
        return self._store.search_alumni(query or "")


__all__ = ["DirectoryService", "MAX_PAGE_SIZE"]
