"""
Key-value storage for the ServiceTrade session.

The session is persisted as two string entries: the session cookie
and its ISO-8601 expiration timestamp.  Only :class:`SessionManager`
writes these keys; the query side of the client only reads the cookie.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from .exceptions import CredentialStoreError

SESSION_COOKIES_KEY = "SESSION_COOKIES"
SESSION_EXPIRATION_KEY = "SESSION_EXPIRATION"


class CredentialStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryCredentialStore:
    """Dictionary backed store that lives as long as the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)


class JsonFileCredentialStore:
    """Store that keeps its entries in a single JSON file.

    Parameters
    ----------
    path : str or Path
        Location of the JSON file.  The file and its parent directory
        are created on the first write; a missing file reads as empty.
        A leading ``~`` is expanded to the user's home directory.

    Notes
    -----
    The whole file is rewritten on every ``set`` and ``delete``.  The new
    contents go to a temporary file in the same directory which then
    replaces the old one, so readers never see a partly written file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as exc:
            raise CredentialStoreError(
                f"Failed to read session store {self.path}: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise CredentialStoreError(
                f"Session store {self.path} does not contain a JSON object"
            )
        return {str(k): str(v) for k, v in payload.items()}

    def _write(self, values: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(values, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise CredentialStoreError(
                f"Failed to write session store {self.path}: {exc}"
            ) from exc

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            values = self._read()
            values[key] = value
            self._write(values)

    def delete(self, key: str) -> None:
        with self._lock:
            values = self._read()
            if key not in values:
                return
            del values[key]
            self._write(values)
