"""Vault encryption codec with a fixed-offset binary layout, shipped as base64 text.

Blob layout (before base64):
- 16 bytes: PBKDF2 salt
- 12 bytes: AES-GCM nonce
- N bytes: ciphertext with the 16-byte GCM tag appended

The layout carries no version byte or KDF parameters, so a change of
algorithm or iteration count needs a new format revision.
"""
import base64
import binascii
import json
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from zcloudpass.core.exceptions import DecryptionError
from zcloudpass.core.models import Vault

from .kdf import SALT_SIZE, derive_key, generate_salt

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16
HEADER_SIZE = SALT_SIZE + NONCE_SIZE


def _wipe(buf: bytearray) -> None:
    # best-effort overwrite of our buffer; the bytes returned by the KDF and any
    # copy held inside the cipher object are not reachable from here
    for i in range(len(buf)):
        buf[i] = 0


_ASCII_WHITESPACE = str.maketrans("", "", " \t\n\f\r")


def _strip_whitespace(blob):
    if isinstance(blob, str):
        return blob.translate(_ASCII_WHITESPACE)
    return blob


def _serialize(vault: Vault) -> bytes:
    return json.dumps(vault.to_dict(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def create_empty_vault() -> Vault:
    """Return a vault with no entries, used for brand-new accounts."""
    return Vault()


def encrypt_vault(vault: Vault, password: str) -> str:
    """
    Encrypt ``vault`` under ``password`` and return the base64 blob.

    A fresh salt and nonce are drawn on every call, so encrypting the same
    vault twice never yields the same bytes. The derived key is not kept.
    """
    salt = generate_salt()
    nonce = os.urandom(NONCE_SIZE)
    key = bytearray(derive_key(password, salt))
    try:
        aead = AESGCM(key)
        ct = aead.encrypt(nonce, _serialize(vault), None)
    finally:
        _wipe(key)

    logger.debug("encrypted vault with %d entries", len(vault.entries))
    return base64.b64encode(salt + nonce + ct).decode("ascii")


def decrypt_vault(blob: str, password: str) -> Vault:
    """
    Decrypt a blob produced by :func:`encrypt_vault`.

    Every failure mode (bad encoding, truncated blob, wrong password, tampered
    bytes, malformed document) raises the same :class:`DecryptionError`.
    """
    try:
        # line breaks and spaces are tolerated, like forgiving-base64 decoders
        raw = base64.b64decode(_strip_whitespace(blob), validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise DecryptionError() from None

    if len(raw) < HEADER_SIZE + TAG_SIZE:
        raise DecryptionError()

    salt = raw[:SALT_SIZE]
    nonce = raw[SALT_SIZE:HEADER_SIZE]
    ct = raw[HEADER_SIZE:]

    key = bytearray(derive_key(password, salt))
    try:
        aead = AESGCM(key)
        plaintext = aead.decrypt(nonce, ct, None)
    except InvalidTag:
        raise DecryptionError() from None
    finally:
        _wipe(key)

    try:
        vault = Vault.from_dict(json.loads(plaintext.decode("utf-8")))
    except (UnicodeDecodeError, ValueError):
        # json.JSONDecodeError is a ValueError
        raise DecryptionError() from None

    logger.debug("decrypted vault with %d entries", len(vault.entries))
    return vault
