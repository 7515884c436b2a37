"""Environment based settings for :class:`ServiceTradeClient`."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import ValidationError
from .session import DEFAULT_BASE_URL
from .store import CredentialStore, InMemoryCredentialStore, JsonFileCredentialStore


@dataclass
class ClientSettings:
    base_url: str = DEFAULT_BASE_URL
    session_file: Optional[Path] = None
    request_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientSettings":
        """Read ``SERVICETRADE_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        timeout = None
        raw_timeout = env.get("SERVICETRADE_REQUEST_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ValidationError(
                    f"SERVICETRADE_REQUEST_TIMEOUT must be a number, got {raw_timeout!r}"
                ) from None
            if timeout <= 0:
                raise ValidationError("SERVICETRADE_REQUEST_TIMEOUT must be positive")

        session_file = env.get("SERVICETRADE_SESSION_FILE")
        return cls(
            base_url=env.get("SERVICETRADE_BASE_URL") or DEFAULT_BASE_URL,
            session_file=Path(session_file) if session_file else None,
            request_timeout=timeout,
        )

    def make_store(self) -> CredentialStore:
        if self.session_file is not None:
            return JsonFileCredentialStore(self.session_file)
        return InMemoryCredentialStore()
