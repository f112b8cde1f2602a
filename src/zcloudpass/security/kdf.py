"""Key derivation for vault encryption keys."""
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_SIZE = 16
KEY_SIZE = 32
KDF_ITERATIONS = 100_000


def generate_salt(length: int = SALT_SIZE) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key(
    password: bytes | str,
    salt: bytes,
    iterations: int = KDF_ITERATIONS,
    key_len: int = KEY_SIZE,
) -> bytes:
    """
    Derive an AES-256 key from a master password using PBKDF2-HMAC-SHA256.
    Returns raw derived key bytes. Same inputs always give the same key.
    """
    if isinstance(password, str):
        password = password.encode("utf-8")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=key_len,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password)
