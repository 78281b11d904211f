"""Users registry and the single active session.

One ``AuthManager`` is built per application process (see
``main.create_app``) and handed to request handlers through
``deps.get_auth``. It rehydrates the registry, the current user and the
navigation source from local storage on construction; if any of the three is
corrupt all three are discarded together. If the store cannot be read at all
the manager starts logged out and leaves the stored keys alone.

Passwords are stored and compared in plaintext, exactly as the stored
``users`` layout has always held them.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from config import CURRENT_USER_KEY, NAVIGATION_SOURCE_KEY, USERS_KEY
from db import LocalStorage, StorageReadFailed, StorageWriteFailed
from models import User
from storage import PersistedStateCorrupt, decode, encode

logger = logging.getLogger(__name__)

NAVIGATION_SOURCES = ("login", "signup")


class AuthError(enum.Enum):
    DUPLICATE_EMAIL = "Email already registered"
    INVALID_CREDENTIALS = "Invalid credentials"


@dataclass(frozen=True)
class AuthResult:
    success: bool
    error: Optional[AuthError] = None

    @property
    def message(self) -> Optional[str]:
        return self.error.value if self.error else None

    def to_dict(self) -> dict:
        data = {"success": self.success}
        if self.error:
            data["message"] = self.error.value
        return data


class AuthManager:
    def __init__(self, store: LocalStorage):
        self.store = store
        self._lock = threading.Lock()
        self._users: list[User] = []
        self._current_user: Optional[User] = None
        self._navigation_source: Optional[str] = None
        self._rehydrate()

    # ── Read accessors ────────────────────────────────────────────────────

    @property
    def users(self) -> tuple[User, ...]:
        return tuple(self._users)

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    @property
    def navigation_source(self) -> Optional[str]:
        return self._navigation_source

    # ── Operations ────────────────────────────────────────────────────────

    def signup(self, new_user: User) -> AuthResult:
        with self._lock:
            if any(u.email == new_user.email for u in self._users):
                logger.info("Signup rejected: email already registered")
                return AuthResult(False, AuthError.DUPLICATE_EMAIL)
            self._users.append(new_user)
            self._current_user = new_user
            self._navigation_source = "signup"
            self._persist_users()
            self._persist_session()
            registered = len(self._users)
        logger.info("User signed up (%d registered)", registered)
        return AuthResult(True)

    def login(self, email: str, password: str) -> AuthResult:
        with self._lock:
            found = next(
                (u for u in self._users if u.email == email and u.password == password),
                None,
            )
            if found is None:
                logger.info("Login rejected: invalid credentials")
                return AuthResult(False, AuthError.INVALID_CREDENTIALS)
            self._current_user = found
            self._navigation_source = "login"
            self._persist_session()
        logger.info("User logged in")
        return AuthResult(True)

    def logout(self):
        with self._lock:
            self._current_user = None
            self._navigation_source = None
            self._persist_session()
        logger.info("User logged out")

    # ── Persistence ───────────────────────────────────────────────────────

    def _rehydrate(self):
        try:
            users, current, source = self._read_persisted()
        except PersistedStateCorrupt:
            logger.exception("Persisted session state is corrupt; resetting users and session")
            for key in (USERS_KEY, CURRENT_USER_KEY, NAVIGATION_SOURCE_KEY):
                self._write(key, None)
            return
        except StorageReadFailed:
            logger.exception("Could not read persisted session state; starting logged out")
            return
        self._users = users
        self._current_user = current
        self._navigation_source = source

    def _read_persisted(self):
        users = []
        raw = self.store.get_item(USERS_KEY)
        if raw is not None:
            data = decode(raw, USERS_KEY)
            if not isinstance(data, list):
                raise PersistedStateCorrupt(f"{USERS_KEY!r} is not a list")
            try:
                users = [User.from_dict(item) for item in data]
            except ValueError as exc:
                raise PersistedStateCorrupt(f"bad user record: {exc}") from exc
            emails = [u.email for u in users]
            if len(set(emails)) != len(emails):
                raise PersistedStateCorrupt("duplicate email in users registry")

        current = None
        raw = self.store.get_item(CURRENT_USER_KEY)
        if raw is not None:
            try:
                stored = User.from_dict(decode(raw, CURRENT_USER_KEY))
            except ValueError as exc:
                raise PersistedStateCorrupt(f"bad current user: {exc}") from exc
            # The session must point at a registry entry, never a stray copy.
            current = next((u for u in users if u == stored), None)
            if current is None:
                raise PersistedStateCorrupt("current user is not in the users registry")

        source = None
        raw = self.store.get_item(NAVIGATION_SOURCE_KEY)
        if raw is not None:
            # Stored as the bare literal; tolerate a JSON-quoted one too.
            source = raw if raw in NAVIGATION_SOURCES else decode(raw, NAVIGATION_SOURCE_KEY)
            if source not in NAVIGATION_SOURCES:
                raise PersistedStateCorrupt(f"unknown navigation source {source!r}")
            if current is None:
                raise PersistedStateCorrupt("navigation source set without a session")
        return users, current, source

    def _persist_users(self):
        self._write(USERS_KEY, [u.to_dict() for u in self._users])

    def _persist_session(self):
        self._write(
            CURRENT_USER_KEY,
            self._current_user.to_dict() if self._current_user else None,
        )
        self._write(NAVIGATION_SOURCE_KEY, self._navigation_source, raw=True)

    def _write(self, key: str, value, raw: bool = False):
        """Store ``value`` under ``key`` (JSON unless ``raw``); None removes the key."""
        try:
            if value is None:
                self.store.remove_item(key)
            else:
                self.store.set_item(key, value if raw else encode(value))
        except StorageWriteFailed:
            logger.exception("Could not persist %s; keeping in-memory state", key)
