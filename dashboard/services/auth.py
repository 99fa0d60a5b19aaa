"""
Console users and login sessions.

Users live in config/users.json:

  {"users": [
      {"_id": "u1", "username": "admin", "role": "admin",
       "name": "Administrator", "email": "", "lastLogin": null,
       "password_hash": "$2b$12$..."}
  ]}

Hashes are bcrypt.  Older ``pbkdf2_sha256$<iters>$<salt_hex>$<digest_hex>``
hashes still verify and are upgraded to bcrypt on the next successful
login.  An entry may carry a plain ``password`` instead of
``password_hash`` (factory defaults); it is hashed and written back the
first time the file is loaded.

Sessions are held in memory: a login issues a random bearer token that
expires after the session TTL, or the longer "remember me" TTL.
"""
import hashlib
import hmac
import json
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import bcrypt

from models.auth import AuthSession, User

logger = logging.getLogger(__name__)

_PBKDF2_PREFIX = "pbkdf2_sha256$"
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 6


class PasswordChangeError(ValueError):
    """The current password was wrong or the new one is not acceptable."""


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    if not password:
        raise ValueError("Password must be a non-empty string")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def _verify_pbkdf2(password: str, encoded: str) -> bool:
    # legacy format: pbkdf2_sha256$<iters>$<salt_hex>$<digest_hex>
    try:
        iters_str, salt_hex, dk_hex = encoded[len(_PBKDF2_PREFIX):].split("$", 2)
        expected = bytes.fromhex(dk_hex)
        got = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iters_str)
        )
    except ValueError:
        logger.warning("Malformed password hash in users file")
        return False
    return hmac.compare_digest(got, expected)


def verify_password(password: str, encoded: Optional[str]) -> bool:
    if not encoded:
        return False
    encoded = encoded.strip()
    if encoded.startswith(_PBKDF2_PREFIX):
        return _verify_pbkdf2(password, encoded)
    if encoded.startswith(_BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), encoded.encode("utf-8"))
        except ValueError:
            logger.warning("Malformed password hash in users file")
            return False
    return False


def needs_rehash(encoded: Optional[str], rounds: int = BCRYPT_ROUNDS) -> bool:
    """True for legacy PBKDF2 hashes and bcrypt hashes below *rounds*."""
    if not encoded or not encoded.startswith(_BCRYPT_PREFIXES):
        return True
    try:
        return int(encoded.split("$")[2]) < rounds
    except (IndexError, ValueError):
        return True


# ---------------------------------------------------------------------------
# User store
# ---------------------------------------------------------------------------

class UserStore:
    """Reads and updates the users file."""

    def __init__(self, users_file: Path, rounds: int = BCRYPT_ROUNDS):
        self.users_file = users_file
        self.rounds = rounds
        self._lock = threading.Lock()

    def _read(self) -> list[dict]:
        if not self.users_file.exists():
            logger.warning("Users file not found: %s; no one can log in", self.users_file)
            return []
        with open(self.users_file, encoding="utf-8") as f:
            data = json.load(f)
        return list(data.get("users", []))

    def _write(self, entries: list[dict]) -> None:
        self.users_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.users_file.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump({"users": entries}, f, indent=2)
        tmp.replace(self.users_file)

    def _load(self) -> list[dict]:
        entries = self._read()
        seeded = False
        for entry in entries:
            if "password" in entry and not entry.get("password_hash"):
                entry["password_hash"] = hash_password(entry.pop("password"), self.rounds)
                seeded = True
        if seeded:
            logger.info("Hashed seed passwords in %s", self.users_file.name)
            self._write(entries)
        return entries

    @staticmethod
    def _find(entries: list[dict], username: str) -> Optional[dict]:
        wanted = username.strip().lower()
        return next((e for e in entries if e.get("username", "").lower() == wanted), None)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """The user for valid credentials (lastLogin updated), else None."""
        with self._lock:
            entries = self._load()
            entry = self._find(entries, username)
            if entry is not None and verify_password(password, entry.get("password_hash")):
                if needs_rehash(entry["password_hash"], self.rounds):
                    logger.info("Upgrading password hash for %s", entry["username"])
                    entry["password_hash"] = hash_password(password, self.rounds)
                entry["lastLogin"] = datetime.now(timezone.utc).isoformat()
                self._write(entries)
                return User.model_validate(entry)
        logger.info("Failed login for %r", username)
        return None

    def change_password(self, username: str, current: str, new: str) -> None:
        """Replace a user's password after checking the current one."""
        if len(new or "") < MIN_PASSWORD_LENGTH:
            raise PasswordChangeError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        with self._lock:
            entries = self._load()
            entry = self._find(entries, username)
            if entry is None or not verify_password(current, entry.get("password_hash")):
                raise PasswordChangeError("Current password is incorrect")
            entry["password_hash"] = hash_password(new, self.rounds)
            self._write(entries)
        logger.info("Password changed for %s", username)

    def list_users(self) -> list[User]:
        with self._lock:
            return [User.model_validate(e) for e in self._load()]

    def get(self, user_id: str) -> Optional[User]:
        return next((u for u in self.list_users() if u.id == user_id), None)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@dataclass
class _Entry:
    session: AuthSession
    expires_at: datetime


class SessionRegistry:
    """In-memory bearer-token sessions with expiry."""

    def __init__(self, ttl: timedelta, remember_ttl: timedelta):
        self.ttl = ttl
        self.remember_ttl = remember_ttl
        self._sessions: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def issue(self, user: User, remember: bool = False) -> AuthSession:
        token = secrets.token_urlsafe(32)
        session = AuthSession.anonymous().login(token, user, remember)
        expires_at = datetime.now(timezone.utc) + (self.remember_ttl if remember else self.ttl)
        with self._lock:
            self._sessions[token] = _Entry(session, expires_at)
        return session

    def resolve(self, token: Optional[str]) -> AuthSession:
        """The session for *token*, or an anonymous one if unknown or expired."""
        if not token:
            return AuthSession.anonymous()
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return AuthSession.anonymous()
            if entry.expires_at <= datetime.now(timezone.utc):
                del self._sessions[token]
                logger.debug("Session expired for %s", entry.session.user.username)
                return AuthSession.anonymous()
            return entry.session

    def revoke(self, token: Optional[str]) -> bool:
        with self._lock:
            return self._sessions.pop(token or "", None) is not None


class AuthService:
    """Login / logout on top of the user store and session registry."""

    def __init__(self, users: UserStore, sessions: SessionRegistry):
        self.users = users
        self.sessions = sessions

    @classmethod
    def from_config(cls, config) -> "AuthService":
        return cls(
            UserStore(config.users_file, rounds=config.bcrypt_rounds),
            SessionRegistry(
                ttl=timedelta(hours=config.session_ttl_hours),
                remember_ttl=timedelta(days=config.remember_ttl_days),
            ),
        )

    def login(self, username: str, password: str, remember: bool = False) -> Optional[AuthSession]:
        user = self.users.authenticate(username, password)
        if user is None:
            return None
        logger.info("User %s logged in (role=%s)", user.username, user.role)
        return self.sessions.issue(user, remember)

    def logout(self, token: Optional[str]) -> AuthSession:
        if self.sessions.revoke(token):
            logger.info("Session logged out")
        return AuthSession.anonymous()

    def session_for(self, token: Optional[str]) -> AuthSession:
        return self.sessions.resolve(token)
