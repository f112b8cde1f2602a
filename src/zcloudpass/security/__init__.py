"""Security helpers: key derivation, vault encryption and session persistence.

This package provides:
- PBKDF2-HMAC-SHA256 key derivation (100,000 iterations)
- AES-256-GCM vault encryption in a fixed salt|nonce|ciphertext layout
- Session-token storage with expiry normalization (keyring, file or memory)
- Password generation and master-password checks
"""

from .kdf import generate_salt, derive_key
from .codec import create_empty_vault, encrypt_vault, decrypt_vault
from .session import SessionStore, normalize_expires
from .keystore import KeyringStorage, FileStorage, MemoryStorage, assess_keyring_backend
from .passwords import generate_password, password_strength, validate_new_password

__all__ = [
    "generate_salt",
    "derive_key",
    "create_empty_vault",
    "encrypt_vault",
    "decrypt_vault",
    "SessionStore",
    "normalize_expires",
    "KeyringStorage",
    "FileStorage",
    "MemoryStorage",
    "assess_keyring_backend",
    "generate_password",
    "password_strength",
    "validate_new_password",
]
