"""
Client configuration, read from ZCLOUDPASS_* environment variables.

    ZCLOUDPASS_API_BASE         base URL including the /api/v1 prefix
    ZCLOUDPASS_TIMEOUT          request timeout in seconds (unset: no timeout)
    ZCLOUDPASS_SESSION_BACKEND  keyring | file | memory
    ZCLOUDPASS_SESSION_PATH     session file for the "file" backend
    ZCLOUDPASS_KEYRING_SERVICE  service name for the "keyring" backend
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_API_BASE = "http://localhost:3000/api/v1"
API_PREFIX = "/api/v1"
SESSION_BACKENDS = ("keyring", "file", "memory")


@dataclass
class ClientConfig:
    """Settings shared by the auth and sync clients."""

    api_base: str = DEFAULT_API_BASE
    timeout: Optional[float] = None
    session_backend: str = "file"
    session_path: Path = Path.home() / ".zcloudpass" / "session.json"
    keyring_service: str = "zcloudpass"

    def __post_init__(self):
        self.api_base = self.api_base.rstrip("/")
        self.session_path = Path(self.session_path).expanduser()
        if self.session_backend not in SESSION_BACKENDS:
            raise ValueError(
                f"Unsupported session backend: {self.session_backend} "
                f"(expected one of {', '.join(SESSION_BACKENDS)})"
            )

    @property
    def root_base(self) -> str:
        """Base URL with the /api/v1 prefix removed."""
        if self.api_base.endswith(API_PREFIX):
            return self.api_base[: -len(API_PREFIX)]
        return self.api_base

    @classmethod
    def from_env(cls) -> "ClientConfig":
        timeout_raw = os.getenv("ZCLOUDPASS_TIMEOUT")
        timeout = float(timeout_raw) if timeout_raw else None
        return cls(
            api_base=os.getenv("ZCLOUDPASS_API_BASE", DEFAULT_API_BASE),
            timeout=timeout,
            session_backend=os.getenv("ZCLOUDPASS_SESSION_BACKEND", "file"),
            session_path=Path(
                os.getenv("ZCLOUDPASS_SESSION_PATH", str(Path.home() / ".zcloudpass" / "session.json"))
            ),
            keyring_service=os.getenv("ZCLOUDPASS_KEYRING_SERVICE", "zcloudpass"),
        )
