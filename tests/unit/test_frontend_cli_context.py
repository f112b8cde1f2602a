"""Unit tests for the CLI AppContext builder."""

import httpx
import pytest

from zcloudpass.config import ClientConfig
from zcloudpass.frontend.cli.context import build_context
from zcloudpass.security.keystore import FileStorage, MemoryStorage
from zcloudpass.security.session import SessionStore


def test_build_context_wires_shared_objects(session_store):
    config = ClientConfig(api_base="http://h/api/v1", session_backend="memory")
    ctx = build_context(config, store=session_store)
    try:
        assert ctx.transport.api_base == "http://h/api/v1"
        assert ctx.auth.store is session_store
        assert ctx.sync.auth is ctx.auth
        assert ctx.rotation.auth is ctx.auth
        assert ctx.rotation.sync is ctx.sync
    finally:
        ctx.close()


def test_build_context_from_environment(monkeypatch, tmp_path):
    """With no arguments config and session backend come from the environment."""
    monkeypatch.setenv("ZCLOUDPASS_API_BASE", "http://env/api/v1/")
    monkeypatch.setenv("ZCLOUDPASS_SESSION_BACKEND", "file")
    monkeypatch.setenv("ZCLOUDPASS_SESSION_PATH", str(tmp_path / "session.json"))

    ctx = build_context()
    try:
        assert ctx.config.api_base == "http://env/api/v1"
        assert isinstance(ctx.auth.store.storage, FileStorage)
    finally:
        ctx.close()


def test_memory_backend_from_config():
    ctx = build_context(ClientConfig(session_backend="memory"))
    try:
        assert isinstance(ctx.auth.store.storage, MemoryStorage)
    finally:
        ctx.close()


def test_close_closes_client():
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    ctx = build_context(ClientConfig(session_backend="memory"), store=SessionStore(), client=client)
    ctx.close()
    assert client.is_closed


def test_invalid_backend_rejected(monkeypatch):
    monkeypatch.setenv("ZCLOUDPASS_SESSION_BACKEND", "sqlite")
    with pytest.raises(ValueError):
        build_context()
