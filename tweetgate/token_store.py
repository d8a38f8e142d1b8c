"""
Credential persistence.

Two backends share the TokenStore interface:

* MemoryTokenStore: user_id -> Credential map, lost on restart.
* FileTokenStore: a single JSON record on disk, ``{"accessToken", "refreshToken", "userId"}``,
  rewritten in full on every save and chmod 0600.

Credentials are frozen dataclasses: callers borrow a snapshot and write changes back
through ``save``.
"""
import json
import os
import stat
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .config import Config
from .logger import logger


@dataclass(frozen=True)
class Credential:
    access_token: str
    refresh_token: str
    user_id: str

    def to_dict(self) -> dict:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "userId": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Credential":
        return cls(
            access_token=data["accessToken"],
            refresh_token=data.get("refreshToken") or "",
            user_id=str(data["userId"]),
        )


class TokenStore(ABC):
    """Owns the stored credentials. ``save`` always replaces the whole record."""

    @abstractmethod
    def load(self, user_id: Optional[str] = None) -> Optional[Credential]:
        """Return the stored credential, or None when nothing (matching) is stored."""

    @abstractmethod
    def save(self, credential: Credential) -> None:
        ...

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        ...


class MemoryTokenStore(TokenStore):
    def __init__(self):
        self._tokens: Dict[str, Credential] = {}
        self._lock = threading.Lock()

    def load(self, user_id: Optional[str] = None) -> Optional[Credential]:
        with self._lock:
            if user_id is not None:
                return self._tokens.get(user_id)
            if len(self._tokens) == 1:
                return next(iter(self._tokens.values()))
            return None

    def save(self, credential: Credential) -> None:
        with self._lock:
            self._tokens[credential.user_id] = credential
        logger.info("Saved credential for user %s (memory)", credential.user_id)

    def delete(self, user_id: str) -> bool:
        with self._lock:
            removed = self._tokens.pop(user_id, None) is not None
        if removed:
            logger.info("Deleted credential for user %s (memory)", user_id)
        return removed


class FileTokenStore(TokenStore):
    """Single-record JSON file. Holds at most one credential."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Optional[Credential]:
        if not self.path.exists():
            return None
        try:
            return Credential.from_dict(json.loads(self.path.read_text()))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Failed to read token file %s: %s", self.path, e)
            return None

    def load(self, user_id: Optional[str] = None) -> Optional[Credential]:
        with self._lock:
            credential = self._read()
        if credential is None:
            return None
        if user_id is not None and credential.user_id != user_id:
            return None
        return credential

    def save(self, credential: Credential) -> None:
        with self._lock:
            directory = self.path.parent
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".tokens-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(credential.to_dict(), f, indent=2)
                os.chmod(tmp_name, stat.S_IRUSR | stat.S_IWUSR)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        logger.info("Saved credential for user %s to %s", credential.user_id, self.path)

    def delete(self, user_id: str) -> bool:
        with self._lock:
            credential = self._read()
            if credential is None or credential.user_id != user_id:
                return False
            self.path.unlink()
        logger.info("Deleted credential for user %s from %s", user_id, self.path)
        return True


def make_token_store(backend: Optional[str] = None, path: Optional[str] = None) -> TokenStore:
    backend = (backend or Config.TOKEN_STORE_BACKEND).lower()
    if backend == "memory":
        return MemoryTokenStore()
    if backend == "file":
        return FileTokenStore(path or Config.TOKEN_STORE_PATH)
    raise ValueError(f"Unknown token store backend: {backend}")
