"""
Shared pytest fixtures for the zcloudpass test suite.

`FakeVaultServer` implements the service's HTTP contract in memory and is
mounted behind ``httpx.MockTransport`` so the real client code runs unchanged.
"""

from __future__ import annotations

import json
import secrets
from typing import Dict, List, Optional, Set, Tuple

import httpx
import pytest

from zcloudpass.config import ClientConfig
from zcloudpass.frontend.cli.context import build_context
from zcloudpass.security.keystore import MemoryStorage
from zcloudpass.security.session import SessionStore

BASE = "http://testserver/api/v1"

ALL_SESSION_PATHS = {
    "/api/v1/auth/session",
    "/api/v1/auth/login",
    "/auth/session",
    "/auth/login",
}


def _json(status: int, body) -> httpx.Response:
    return httpx.Response(status, json=body)


class FakeVaultServer:
    """In-memory stand-in for the remote vault service."""

    def __init__(
        self,
        session_paths: Optional[Set[str]] = None,
        echo_version: bool = True,
        expires_at: str = "2999-01-01 00:00:00",
    ):
        self.session_paths = set(ALL_SESSION_PATHS if session_paths is None else session_paths)
        self.echo_version = echo_version
        self.expires_at = expires_at
        self.users: Dict[str, dict] = {}
        self.tokens: Dict[str, str] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_change_password = False

    # helpers for tests -------------------------------------------------

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [p for m, p in self.calls if method is None or m == method]

    def add_user(self, email: str, password: str, vault: Optional[str] = None, version: int = 0) -> None:
        self.users[email] = {"password": password, "vault": vault, "version": version}

    # request handling --------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        method = request.method
        self.calls.append((method, path))
        body = json.loads(request.content) if request.content else None

        if method == "GET" and path == "/health":
            return httpx.Response(200, text="OK")
        if method == "GET" and path == "/api/v1/auth/health":
            return httpx.Response(200, text="auth OK")
        if method == "POST" and path == "/api/v1/auth/register":
            return self._register(body)
        if method == "POST" and path in ALL_SESSION_PATHS:
            if path not in self.session_paths:
                return httpx.Response(404, text="Not Found")
            return self._session(body)

        email = self._authenticated(request)
        if method == "POST" and path == "/api/v1/auth/logout":
            token = request.headers.get("Authorization", "")[len("Bearer "):]
            self.tokens.pop(token, None)
            return httpx.Response(204)
        if email is None:
            return _json(401, {"error": "unauthorized", "message": "Missing or invalid session"})
        if path == "/api/v1/vault/" and method == "GET":
            user = self.users[email]
            return _json(200, {"encrypted_vault": user["vault"], "vault_version": user["version"]})
        if path == "/api/v1/vault/" and method == "PUT":
            return self._update(email, body)
        if path == "/api/v1/auth/change-password" and method == "POST":
            return self._change_password(email, body)
        return httpx.Response(404, text="Not Found")

    def _authenticated(self, request: httpx.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header[len("Bearer "):])

    def _register(self, body) -> httpx.Response:
        email = body["email"]
        if email in self.users:
            return _json(409, {"error": "user_exists", "message": "User already exists"})
        self.add_user(email, body["master_password"], body.get("encrypted_vault"))
        return _json(201, {"email": email, "username": body.get("username")})

    def _session(self, body) -> httpx.Response:
        user = self.users.get(body.get("email"))
        if user is None or user["password"] != body.get("master_password"):
            return _json(401, {"error": "invalid_credentials", "message": "Invalid email or password"})
        token = secrets.token_hex(16)
        self.tokens[token] = body["email"]
        return _json(200, {"session_token": token, "expires_at": self.expires_at})

    def _update(self, email: str, body) -> httpx.Response:
        user = self.users[email]
        expected = body.get("vault_version")
        if expected is not None and expected != user["version"]:
            return _json(409, {"error": "version_conflict", "message": "Vault version mismatch"})
        user["vault"] = body["encrypted_vault"]
        user["version"] += 1
        if self.echo_version:
            return _json(200, {"vault_version": user["version"]})
        return _json(200, {})

    def _change_password(self, email: str, body) -> httpx.Response:
        user = self.users[email]
        if self.fail_change_password:
            return _json(500, {"error": "internal", "message": "credential store unavailable"})
        if body.get("current_password") != user["password"]:
            return _json(401, {"error": "invalid_credentials", "message": "Current password is wrong"})
        user["password"] = body["new_password"]
        return _json(200, {"message": "Password changed"})


@pytest.fixture
def server():
    return FakeVaultServer()


@pytest.fixture
def session_store():
    return SessionStore(MemoryStorage())


@pytest.fixture
def ctx(server, session_store):
    """Fully wired client objects talking to the fake server."""
    config = ClientConfig(api_base=BASE, session_backend="memory")
    client = httpx.Client(transport=httpx.MockTransport(server.handle))
    context = build_context(config, store=session_store, client=client)
    yield context
    context.close()
