"""Domain models shared by the alumni portal flows and record stores."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional


@dataclass(frozen=True)
class Account:
    """Represents a registered user account, including its password hash."""

    id: int
    name: str
    email: str
    password_hash: str
    graduation_year: Optional[int]
    major: Optional[str]
    created_at: datetime

    def public_view(self) -> Dict[str, object]:
        """Return the fields that may be shown to the account holder."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "graduationYear": self.graduation_year,
            "major": self.major,
        }


@dataclass(frozen=True)
class NewAccount:
    """Values required to persist an account that does not exist yet."""

    name: str
    email: str
    password_hash: str
    graduation_year: Optional[int] = None
    major: Optional[str] = None


@dataclass(frozen=True)
class JobPosting:
    id: int
    title: str
    company: str
    location: str
    posted_date: date


@dataclass(frozen=True)
class AlumniRecord:
    id: int
    name: str
    graduation_year: Optional[int]
    major: Optional[str]


@dataclass(frozen=True)
class IssuedSession:
    """A freshly minted session token and its validity window."""

    token: str
    account_id: int
    issued_at: datetime
    expires_at: datetime


__all__ = ["Account", "AlumniRecord", "IssuedSession", "JobPosting", "NewAccount"]
