"""SQLite-backed persistence for accounts, job postings and alumni records."""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional, TypeVar, Union

from .errors import ConflictError, StorageError
from .models import Account, AlumniRecord, JobPosting, NewAccount
from .storage import RecordStore, normalise_search_query

logger = logging.getLogger("alumni.database")

Record = TypeVar("Record", bound=Union[Account, JobPosting, AlumniRecord])

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    graduation_year INTEGER,
    major TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    company TEXT NOT NULL,
    location TEXT NOT NULL,
    posted_date TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS alumni (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    graduation_year INTEGER,
    major TEXT
);
"""


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _sql_lower(value: object) -> Optional[str]:
    if value is None:
        return None
    return str(value).lower()


class Database(RecordStore):
    """Record store on a single SQLite connection shared by request threads."""

    def __init__(self, path: Path, *, timeout: float = 5.0) -> None:
        self._path = path
        self._timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open the connection and create the required tables if they do not exist."""

        with self._lock:
            if self._conn is not None:
                return
            try:
                _ensure_directory(self._path)
                conn = sqlite3.connect(self._path, timeout=self._timeout, check_same_thread=False)
            except (OSError, sqlite3.Error) as exc:
                raise StorageError(f"Unable to open SQLite database at {self._path}") from exc

            conn.row_factory = sqlite3.Row
            try:
                # Python-side lowering keeps name matching identical to the JSON backend.
                conn.create_function("portal_lower", 1, _sql_lower, deterministic=True)
                with conn:
                    conn.executescript(_SCHEMA)
            except sqlite3.Error as exc:
                conn.close()
                raise StorageError(f"Unable to initialise schema in {self._path}") from exc

            self._conn = conn
            logger.info("Opened SQLite record store at %s", self._path)

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.info("Closed SQLite record store at %s", self._path)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._conn is None:
                raise StorageError("SQLite record store is not open")
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as exc:
                raise StorageError(f"SQLite operation failed on {self._path}") from exc

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def find_account_by_email(self, email: str) -> Optional[Account]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        if row is None:
            return None
        return self._convert("users", self._row_to_account, [row])[0]

    def get_account(self, account_id: int) -> Optional[Account]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (account_id,)).fetchone()
        if row is None:
            return None
        return self._convert("users", self._row_to_account, [row])[0]

    def insert_account(self, account: NewAccount) -> int:
        """Persist a new account, relying on the UNIQUE email constraint for conflicts."""

        with self._connection() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (name, email, password_hash, graduation_year, major, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        account.name,
                        account.email,
                        account.password_hash,
                        account.graduation_year,
                        account.major,
                        _serialize_datetime(_current_timestamp()),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError("An account with that email already exists") from exc
            return int(cursor.lastrowid)

    def list_accounts(self) -> List[Account]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return self._convert("users", self._row_to_account, rows)

    # ------------------------------------------------------------------
    # Job board
    # ------------------------------------------------------------------
    def list_jobs(self, *, limit: Optional[int] = None, offset: int = 0) -> List[JobPosting]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM jobs ORDER BY id LIMIT ? OFFSET ?",
                (-1 if limit is None else limit, offset),
            ).fetchall()
        return self._convert("jobs", self._row_to_job, rows)

    def insert_job(self, *, title: str, company: str, location: str, posted_date: date) -> int:
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO jobs (title, company, location, posted_date) VALUES (?, ?, ?, ?)",
                (title, company, location, posted_date.isoformat()),
            )
            return int(cursor.lastrowid)

    # ------------------------------------------------------------------
    # Alumni directory
    # ------------------------------------------------------------------
    def search_alumni(self, query: str) -> List[AlumniRecord]:
        needle = normalise_search_query(query)
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM alumni
                 WHERE ? = ''
                    OR instr(portal_lower(name), ?) > 0
                    OR instr(CAST(graduation_year AS TEXT), ?) > 0
                 ORDER BY id
                """,
                (needle, needle, needle),
            ).fetchall()
        return self._convert("alumni", self._row_to_alumni, rows)

    def insert_alumni(
        self,
        *,
        name: str,
        graduation_year: Optional[int] = None,
        major: Optional[str] = None,
    ) -> int:
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO alumni (name, graduation_year, major) VALUES (?, ?, ?)",
                (name, graduation_year, major),
            )
            return int(cursor.lastrowid)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _convert(
        self,
        table: str,
        converter: Callable[[sqlite3.Row], Record],
        rows: List[sqlite3.Row],
    ) -> List[Record]:
        try:
            return [converter(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed row in table '{table}' of {self._path}") from exc

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            password_hash=str(row["password_hash"]),
            graduation_year=int(row["graduation_year"]) if row["graduation_year"] is not None else None,
            major=row["major"],
            created_at=_parse_datetime(str(row["created_at"])),
        )

    def _row_to_job(self, row: sqlite3.Row) -> JobPosting:
        return JobPosting(
            id=int(row["id"]),
            title=str(row["title"]),
            company=str(row["company"]),
            location=str(row["location"]),
            posted_date=date.fromisoformat(str(row["posted_date"])),
        )

    def _row_to_alumni(self, row: sqlite3.Row) -> AlumniRecord:
        return AlumniRecord(
            id=int(row["id"]),
            name=str(row["name"]),
            graduation_year=int(row["graduation_year"]) if row["graduation_year"] is not None else None,
            major=row["major"],
        )


__all__ = ["Database"]
