"""Durable key -> token-record persistence.

This module introduces a *narrow* persistence interface (:class:`TokenStore`)
and two implementations:

* :class:`FileTokenStore` – one JSON document mapping keys to records.
* :class:`MemoryTokenStore` – process-local dict, for embedding and tests.

The file implementation follows these goals:

* **Atomicity** – writes use *temp-file + os.replace*.
* **No lost keys** – ``store``/``remove`` read-modify-write the whole map
  while holding an advisory lock file, so writing one key never drops another.
* **Resilience** – corrupt JSON degrades to an empty map (logged as a warning)
  unless the store was built with ``strict=True``.

Only two keys are used by the authenticators, see :data:`CLIENT_CREDENTIALS_KEY`
and :data:`AUTHORIZATION_CODE_KEY`.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Final, Iterator, Protocol, runtime_checkable

from spotify_client.auth.errors import StoreCorruptionError, StoreLockError
from spotify_client.auth.models import TokenRecord

_LOG = logging.getLogger("spotify-client.auth.store")

CLIENT_CREDENTIALS_KEY: Final[str] = "client_credentials_token"
AUTHORIZATION_CODE_KEY: Final[str] = "authorization_code_token"
TOKEN_KEYS: Final[tuple[str, ...]] = (CLIENT_CREDENTIALS_KEY, AUTHORIZATION_CODE_KEY)

DEFAULT_TOKEN_PATH: Final[Path] = Path.home() / ".spotify-client" / "tokens.json"

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def _atomic_write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, sort_keys=True)
    try:
        os.chmod(tmp, 0o600)
    except OSError:  # pragma: no cover - e.g. filesystems without modes
        pass
    os.replace(tmp, path)  # atomic on POSIX


@contextmanager
def _file_lock(
    lock_path: Path,
    retries: int = 50,
    delay: float = 0.1,
    stale_after: float = 30.0,
) -> Iterator[None]:
    """Advisory file lock using ``os.O_EXCL`` temp-file creation.

    A lock file older than *stale_after* seconds is assumed to belong to a
    crashed writer and is broken.

    Raises
    ------
    StoreLockError
        If a live lock is still held after *retries* waits of *delay* seconds.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    attempt = 0
    while True:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
            os.close(fd)
            break  # acquired!
        except FileExistsError:
            try:
                age = time.time() - lock_path.stat().st_mtime
            except FileNotFoundError:
                continue  # released between open() and stat()
            if age > stale_after:
                _LOG.warning("Breaking stale token store lock %s (age %.0fs)", lock_path, age)
                lock_path.unlink(missing_ok=True)
                continue
            if attempt >= retries:
                raise StoreLockError(f"Token store is locked by another writer: {lock_path}") from None
            attempt += 1
            time.sleep(delay)
    try:
        yield
    finally:
        lock_path.unlink(missing_ok=True)


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class TokenStore(Protocol):
    """Minimal persistence contract for token records."""

    def store(self, key: str, record: TokenRecord) -> None: ...

    def retrieve(self, key: str) -> TokenRecord | None: ...

    def remove(self, key: str) -> None: ...

    def exists(self, key: str) -> bool: ...


# --------------------------------------------------------------------------- #
# In-memory implementation                                                    #
# --------------------------------------------------------------------------- #


class MemoryTokenStore(TokenStore):
    """Dict-backed store; records do not survive the process."""

    def __init__(self) -> None:
        self._records: dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    def store(self, key: str, record: TokenRecord) -> None:
        with self._lock:
            self._records[key] = record

    def retrieve(self, key: str) -> TokenRecord | None:
        with self._lock:
            return self._records.get(key)

    def remove(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._records


# --------------------------------------------------------------------------- #
# Disk implementation                                                         #
# --------------------------------------------------------------------------- #


class FileTokenStore(TokenStore):
    """JSON-file implementation of :class:`TokenStore`.

    Parameters
    ----------
    path:
        Location of the JSON document. Parent directories are created lazily.
    strict:
        Raise :class:`StoreCorruptionError` instead of degrading to an empty
        map when the document cannot be parsed.
    """

    def __init__(self, path: str | os.PathLike | None = None, *, strict: bool = False) -> None:
        self.path = Path(path or DEFAULT_TOKEN_PATH).expanduser()
        self.strict = strict

    @property
    def _lock_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".lock")

    # ---------------- raw document access -------------------------------- #
    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return self._corrupt(f"token store {self.path} is not valid JSON: {exc}")
        if not isinstance(raw, dict):
            return self._corrupt(f"token store {self.path} is not a JSON object")
        return raw

    def _corrupt(self, message: str) -> dict[str, Any]:
        if self.strict:
            raise StoreCorruptionError(message)
        _LOG.warning("%s; treating as empty", message)
        return {}

    # ---------------- TokenStore ------------------------------------------ #
    def store(self, key: str, record: TokenRecord) -> None:
        with _file_lock(self._lock_path):
            tokens = self._read_all()
            tokens[key] = record.to_dict()
            _atomic_write(self.path, tokens)
        _LOG.debug("Stored token under key=%s in %s", key, self.path)

    def retrieve(self, key: str) -> TokenRecord | None:
        payload = self._read_all().get(key)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            _LOG.warning("Ignoring malformed token entry key=%s", key)
            return None
        try:
            return TokenRecord.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            _LOG.warning("Ignoring malformed token entry key=%s: %s", key, exc)
            return None

    def remove(self, key: str) -> None:
        with _file_lock(self._lock_path):
            tokens = self._read_all()
            if tokens.pop(key, None) is None:
                return
            _atomic_write(self.path, tokens)
        _LOG.debug("Removed token key=%s from %s", key, self.path)

    def exists(self, key: str) -> bool:
        return self.retrieve(key) is not None
