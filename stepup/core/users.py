"""User directory and password verification for the reference host."""

from __future__ import annotations

import hashlib
import hmac
import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

PBKDF2_ITERATIONS = 600_000


def hash_password(password: str, salt: bytes | None = None) -> tuple[str, str]:
    """Hash a password using PBKDF2-HMAC-SHA256.

    Args:
        password: The plaintext password to hash.
        salt: Optional salt bytes. If not provided, generates a random 32-byte salt.

    Returns:
        Tuple of (password_hash, salt) as hex strings.
    """
    if salt is None:
        salt = os.urandom(32)

    password_hash = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations=PBKDF2_ITERATIONS,
        dklen=32,
    )

    return password_hash.hex(), salt.hex()


def verify_password(password: str, stored_hash: str, salt: str) -> bool:
    """Verify a password against a stored hash.

    Args:
        password: The plaintext password to verify.
        stored_hash: The stored password hash (hex string).
        salt: The salt used to create the hash (hex string).

    Returns:
        True if the password matches, False otherwise.
    """
    try:
        salt_bytes = bytes.fromhex(salt)
    except ValueError:
        return False
    computed_hash, _ = hash_password(password, salt_bytes)

    # Constant-time comparison
    return hmac.compare_digest(computed_hash, stored_hash)


@dataclass(frozen=True)
class UserRecord:
    """A user known to the identity store."""

    id: str
    username: str
    password_hash: str = ""
    password_salt: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserRecord:
        """Create a UserRecord from a config entry."""
        return cls(
            id=str(data["id"]),
            username=str(data["username"]),
            password_hash=data.get("password_hash", ""),
            password_salt=data.get("password_salt", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a config entry."""
        return {
            "id": self.id,
            "username": self.username,
            "password_hash": self.password_hash,
            "password_salt": self.password_salt,
        }


class UserDirectory:
    """In-memory user store keyed by id and (case-insensitive) username."""

    def __init__(self, users: Iterable[UserRecord] = ()) -> None:
        self._by_id: dict[str, UserRecord] = {}
        self._by_username: dict[str, UserRecord] = {}
        for user in users:
            self.add(user)

    @classmethod
    def from_config(cls, entries: Iterable[dict[str, Any]]) -> UserDirectory:
        """Build a directory from the ``users`` section of the app config."""
        return cls(UserRecord.from_dict(entry) for entry in entries)

    def __len__(self) -> int:
        return len(self._by_id)

    def add(self, user: UserRecord) -> None:
        """Add a user, replacing any user with the same id.

        Raises:
            ValueError: If another user already has the same username.
        """
        key = user.username.lower()
        existing = self._by_username.get(key)
        if existing is not None and existing.id != user.id:
            raise ValueError(f"Duplicate username: {user.username}")
        previous = self._by_id.get(user.id)
        if previous is not None:
            self._by_username.pop(previous.username.lower(), None)
        self._by_id[user.id] = user
        self._by_username[key] = user

    def create_user(self, user_id: str, username: str, password: str) -> UserRecord:
        """Hash a password and add a new user."""
        password_hash, salt = hash_password(password)
        user = UserRecord(id=user_id, username=username, password_hash=password_hash, password_salt=salt)
        self.add(user)
        return user

    def get_by_id(self, user_id: str) -> UserRecord | None:
        return self._by_id.get(user_id)

    def get_by_username(self, username: str) -> UserRecord | None:
        return self._by_username.get(username.lower())

    def verify_password(self, user: UserRecord, password: str) -> bool:
        """Check a password for a user. Users without a stored hash never match."""
        if not user.password_hash or not user.password_salt:
            return False
        return verify_password(password, user.password_hash, user.password_salt)
