"""Service for storing user accounts and login sessions."""

from __future__ import annotations

from datetime import datetime
import hashlib
import hmac
import secrets

from answerthem.constants.quiz_constants import PASSWORD_MIN_LENGTH, USERNAME_MIN_LENGTH
from answerthem.core.errors import ConflictError, ValidationError
from answerthem.core.models import User

_HASH_ALGORITHM = "sha256"
_HASH_ITERATIONS = 120_000


def hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        _HASH_ALGORITHM, password.encode("utf-8"), salt.encode("utf-8"), _HASH_ITERATIONS
    )
    return f"pbkdf2_{_HASH_ALGORITHM}${_HASH_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        _, iterations, salt, expected = password_hash.split("$")
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac(
        _HASH_ALGORITHM, password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


class UserRepository:
    """Keeps users keyed by id and maps session tokens to user ids."""

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._sessions: dict[str, int] = {}
        self._user_counter: int = 0

    def get_user(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> User | None:
        wanted = username.strip().lower()
        return next((u for u in self._users.values() if u.username.lower() == wanted), None)

    def create_user(self, username: str, password: str) -> User:
        cleaned = username.strip()
        if len(cleaned) < USERNAME_MIN_LENGTH:
            raise ValidationError(f"Username must be at least {USERNAME_MIN_LENGTH} characters.")
        if len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
        if self.get_user_by_username(cleaned) is not None:
            raise ConflictError(f"Username '{cleaned}' is already taken.")

        self._user_counter += 1
        user = User(
            id=self._user_counter,
            username=cleaned,
            password_hash=hash_password(password),
            created_at=datetime.utcnow(),
        )
        self._users[user.id] = user
        return user

    def authenticate(self, username: str, password: str) -> User | None:
        user = self.get_user_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    def create_session(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        self._sessions[token] = user_id
        return token

    def get_user_by_session(self, token: str) -> User | None:
        user_id = self._sessions.get(token)
        if user_id is None:
            return None
        return self._users.get(user_id)

    def delete_session(self, token: str) -> None:
        self._sessions.pop(token, None)
