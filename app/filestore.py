"""Flat-file record store keeping one JSON array per table."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from .errors import ConflictError, StorageError
from .models import Account, AlumniRecord, JobPosting, NewAccount
from .storage import RecordStore, normalise_search_query

logger = logging.getLogger("alumni.filestore")

TABLES = ("users", "jobs", "alumni")

Row = Dict[str, Any]
Record = TypeVar("Record", bound=Union[Account, JobPosting, AlumniRecord])


class JSONFileStore(RecordStore):
    """Record store persisting ``users.json``, ``jobs.json`` and ``alumni.json``.

    Every read-modify-write cycle happens under a single lock and files are
    replaced atomically, so the email uniqueness check and the insert that
    follows it cannot interleave with another registration in this process.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._lock = threading.RLock()
        self._open = False

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        with self._lock:
            if self._open:
                return
            try:
                self._directory.mkdir(parents=True, exist_ok=True)
                for table in TABLES:
                    path = self._table_path(table)
                    if not path.exists():
                        self._write_rows(table, [])
            except OSError as exc:
                raise StorageError(f"Unable to prepare record directory {self._directory}") from exc
            # Surface corrupt files at start-up rather than on the first request.
            for table in TABLES:
                self._read_rows(table)
            self._open = True
            logger.info("Opened JSON record store in %s", self._directory)

    def close(self) -> None:
        with self._lock:
            if self._open:
                logger.info("Closed JSON record store in %s", self._directory)
            self._open = False

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def find_account_by_email(self, email: str) -> Optional[Account]:
        for account in self._records("users", self._row_to_account):
            if account.email == email:
                return account
        return None

    def get_account(self, account_id: int) -> Optional[Account]:
        for account in self._records("users", self._row_to_account):
            if account.id == account_id:
                return account
        return None

    def insert_account(self, account: NewAccount) -> int:
        with self._lock:
            rows = self._load("users")
            if any(row.get("email") == account.email for row in rows):
                raise ConflictError("An account with that email already exists")
            account_id = self._next_id("users", rows)
            rows.append(
                {
                    "id": account_id,
                    "name": account.name,
                    "email": account.email,
                    "password_hash": account.password_hash,
                    "graduation_year": account.graduation_year,
                    "major": account.major,
                    "created_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            self._write_rows("users", rows)
        return account_id

    def list_accounts(self) -> List[Account]:
        return self._records("users", self._row_to_account)

    # ------------------------------------------------------------------
    # Job board
    # ------------------------------------------------------------------
    def list_jobs(self, *, limit: Optional[int] = None, offset: int = 0) -> List[JobPosting]:
        jobs = self._records("jobs", self._row_to_job)
        end = None if limit is None else offset + limit
        return jobs[offset:end]

    def insert_job(self, *, title: str, company: str, location: str, posted_date: date) -> int:
        with self._lock:
            rows = self._load("jobs")
            job_id = self._next_id("jobs", rows)
            rows.append(
                {
                    "id": job_id,
                    "title": title,
                    "company": company,
                    "location": location,
                    "posted_date": posted_date.isoformat(),
                }
            )
            self._write_rows("jobs", rows)
        return job_id

    # ------------------------------------------------------------------
    # Alumni directory
    # ------------------------------------------------------------------
    def search_alumni(self, query: str) -> List[AlumniRecord]:
        needle = normalise_search_query(query)
        return [
            record
            for record in self._records("alumni", self._row_to_alumni)
            if not needle
            or needle in record.name.lower()
            or (record.graduation_year is not None and needle in str(record.graduation_year))
        ]

    def insert_alumni(
        self,
        *,
        name: str,
        graduation_year: Optional[int] = None,
        major: Optional[str] = None,
    ) -> int:
        with self._lock:
            rows = self._load("alumni")
            alumni_id = self._next_id("alumni", rows)
            rows.append(
                {
                    "id": alumni_id,
                    "name": name,
                    "graduation_year": graduation_year,
                    "major": major,
                }
            )
            self._write_rows("alumni", rows)
        return alumni_id

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _table_path(self, table: str) -> Path:
        return self._directory / f"{table}.json"

    def _load(self, table: str) -> List[Row]:
        if not self._open:
            raise StorageError("JSON record store is not open")
        return self._read_rows(table)

    def _read_rows(self, table: str) -> List[Row]:
        path = self._table_path(table)
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Unable to read {path}") from exc
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            raise StorageError(f"{path} must contain a JSON array of objects")
        return payload

    def _write_rows(self, table: str, rows: List[Row]) -> None:
        path = self._table_path(table)
        try:
            fd, temp_name = tempfile.mkstemp(prefix=f".{table}-", suffix=".json", dir=self._directory)
        except OSError as exc:
            raise StorageError(f"Unable to write {path}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(rows, handle, indent=2)
                handle.write("\n")
            os.replace(temp_name, path)
        except OSError as exc:
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            raise StorageError(f"Unable to write {path}") from exc

    def _records(self, table: str, converter: Callable[[Row], Record]) -> List[Record]:
        """Load ``table`` and convert every row, ordered by id."""

        with self._lock:
            rows = self._load(table)
        try:
            records = [converter(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed row in {self._table_path(table)}") from exc
        return sorted(records, key=lambda record: record.id)

    def _next_id(self, table: str, rows: List[Row]) -> int:
        try:
            return max((int(row["id"]) for row in rows), default=0) + 1
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed row id in {self._table_path(table)}") from exc

    @staticmethod
    def _optional_int(value: Any) -> Optional[int]:
        return None if value is None else int(value)

    def _row_to_account(self, row: Row) -> Account:
        return Account(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            password_hash=str(row["password_hash"]),
            graduation_year=self._optional_int(row.get("graduation_year")),
            major=row.get("major"),
            created_at=datetime.fromisoformat(str(row["created_at"])),
        )

    def _row_to_job(self, row: Row) -> JobPosting:
        return JobPosting(
            id=int(row["id"]),
            title=str(row["title"]),
            company=str(row["company"]),
            location=str(row["location"]),
            posted_date=date.fromisoformat(str(row["posted_date"])),
        )

    def _row_to_alumni(self, row: Row) -> AlumniRecord:
        return AlumniRecord(
            id=int(row["id"]),
            name=str(row["name"]),
            graduation_year=self._optional_int(row.get("graduation_year")),
            major=row.get("major"),
        )


__all__ = ["JSONFileStore", "TABLES"]
