"""Password hashing backed by passlib."""

from __future__ import annotations

from passlib.context import CryptContext

DEFAULT_ROUNDS = 100_000

_SCHEME = "pbkdf2_sha256"


class PasswordHasher:
    """Salted one-way password hashing with a tunable work factor.

    Each hash embeds its own salt and round count, so hashes produced under an
    older ``rounds`` setting keep verifying after the setting changes.
    """

    def __init__(self, *, rounds: int = DEFAULT_ROUNDS) -> None:
        if rounds < 1:
            raise ValueError("Hash rounds must be a positive integer")
        self._rounds = rounds
        self._context = CryptContext(
            schemes=[_SCHEME],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=rounds,
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password must not be empty")
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        if not password or not hashed:
            return False
        try:
            return self._context.verify(password, hashed)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> bool:
        """Spend the time of a real verification when there is no hash to check."""

        self._context.dummy_verify()
        return False


__all__ = ["DEFAULT_ROUNDS", "PasswordHasher"]
