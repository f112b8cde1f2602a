"""
Unit tests for the session storage backends.
"""

import os
import stat
from unittest.mock import MagicMock, patch

import pytest
from keyring.errors import PasswordDeleteError

from zcloudpass.security import keystore
from zcloudpass.security.keystore import (
    SESSION_KEY,
    FileStorage,
    KeyringStorage,
    MemoryStorage,
    assess_keyring_backend,
)


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def mock_keyring_lib():
    """Patches the keyring module within zcloudpass.security.keystore."""
    with patch("zcloudpass.security.keystore.keyring", autospec=True) as mock_lib:
        yield mock_lib


def _backend(name, priority=1):
    cls = type(name, (), {"priority": priority})
    return cls()


# ==============================================================================
# Tests: Backend assessment
# ==============================================================================

@pytest.mark.parametrize("name", ["PlaintextKeyring", "EncryptedFileKeyring", "FailKeyring", "NullKeyring"])
def test_assess_insecure_backends(mock_keyring_lib, name):
    mock_keyring_lib.get_keyring.return_value = _backend(name)
    secure, msg = assess_keyring_backend()
    assert secure is False
    assert name in msg


def test_assess_zero_priority(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("SomeKeyring", priority=0)
    secure, msg = assess_keyring_backend()
    assert secure is False
    assert "priority=0" in msg


@pytest.mark.parametrize("name", ["WinVaultKeyring", "Keychain", "SecretServiceKeyring", "KWallet5Keyring"])
def test_assess_known_platform_backends(mock_keyring_lib, name):
    mock_keyring_lib.get_keyring.return_value = _backend(name, priority=5)
    secure, msg = assess_keyring_backend()
    assert secure is True
    assert "acceptable" in msg


def test_assess_unknown_backend(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("CustomKeyring", priority=2)
    secure, msg = assess_keyring_backend()
    assert secure is True
    assert "caution" in msg


def test_assess_get_keyring_failure(mock_keyring_lib):
    mock_keyring_lib.get_keyring.side_effect = RuntimeError("boom")
    secure, msg = assess_keyring_backend()
    assert secure is False
    assert "boom" in msg


# ==============================================================================
# Tests: KeyringStorage
# ==============================================================================

def test_keyring_storage_refuses_insecure_backend():
    with patch("zcloudpass.security.keystore.assess_keyring_backend", return_value=(False, "insecure")):
        with pytest.raises(RuntimeError, match="refusing to store"):
            KeyringStorage()


def test_keyring_storage_force_skips_assessment(mock_keyring_lib):
    with patch("zcloudpass.security.keystore.assess_keyring_backend") as assess:
        storage = KeyringStorage(service="svc", force=True)
    assess.assert_not_called()
    assert storage.account == SESSION_KEY


def test_keyring_storage_round_trip(mock_keyring_lib):
    with patch("zcloudpass.security.keystore.assess_keyring_backend", return_value=(True, "ok")):
        storage = KeyringStorage(service="svc", account="acct")

    storage.write('{"token": "t"}')
    mock_keyring_lib.set_password.assert_called_once_with("svc", "acct", '{"token": "t"}')

    mock_keyring_lib.get_password.return_value = '{"token": "t"}'
    assert storage.read() == '{"token": "t"}'
    mock_keyring_lib.get_password.assert_called_once_with("svc", "acct")

    storage.delete()
    mock_keyring_lib.delete_password.assert_called_once_with("svc", "acct")


def test_keyring_storage_delete_missing_is_quiet(mock_keyring_lib):
    storage = KeyringStorage(force=True)
    mock_keyring_lib.delete_password.side_effect = PasswordDeleteError("not found")
    storage.delete()


# ==============================================================================
# Tests: FileStorage / MemoryStorage
# ==============================================================================

def test_file_storage_round_trip(tmp_path):
    storage = FileStorage(tmp_path / "nested" / "session.json")
    assert storage.read() is None

    storage.write("hello")
    assert storage.read() == "hello"

    storage.write("again")
    assert storage.read() == "again"

    storage.delete()
    assert storage.read() is None
    storage.delete()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_file_storage_is_private(tmp_path):
    storage = FileStorage(tmp_path / "session.json")
    storage.write("secret")
    mode = stat.S_IMODE((tmp_path / "session.json").stat().st_mode)
    assert mode == 0o600


def test_memory_storage():
    storage = MemoryStorage()
    assert storage.read() is None
    storage.write("x")
    assert storage.read() == "x"
    storage.delete()
    assert storage.read() is None
