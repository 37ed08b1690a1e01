"""
Password hashing, key derivation and AES-256-GCM for account keys.

1. The master password is hashed with PBKDF2-SHA256 (passlib) for unlock checks.
2. A separate random key salt derives the encryption key via PBKDF2-SHA256.
3. Each signing key is encrypted with AES-256-GCM under its own random IV;
   ciphertext, IV and auth tag are stored as separate hex strings.
"""

import re
import secrets
from dataclasses import dataclass
from typing import List

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from passlib.context import CryptContext

from core.config.settings import SecuritySettings
from core.utils.exceptions import DecryptionError

TAG_BYTES = 16

# --- Password Hashing ---
# pbkdf2_sha256, not bcrypt: passlib 1.7 fails against bcrypt>=4
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plain password against its hashed version."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hashes a plain password."""
    return pwd_context.hash(password)


def validate_password_strength(password: str, settings: SecuritySettings | None = None) -> List[str]:
    """Return the list of unmet password rules (empty when the password is acceptable)."""
    settings = settings or SecuritySettings()
    errors: List[str] = []

    if len(password) < settings.min_password_length:
        errors.append(f"Password must be at least {settings.min_password_length} characters long")

    if settings.require_password_complexity:
        if not re.search(r"[a-z]", password):
            errors.append("Password must contain at least one lowercase letter")
        if not re.search(r"[A-Z]", password):
            errors.append("Password must contain at least one uppercase letter")
        if not re.search(r"[0-9]", password):
            errors.append("Password must contain at least one number")
        if not re.search(r"[^a-zA-Z0-9]", password):
            errors.append("Password must contain at least one special character")

    return errors


# --- Key derivation ---

def generate_salt(settings: SecuritySettings | None = None) -> str:
    """Random hex salt."""
    settings = settings or SecuritySettings()
    return secrets.token_hex(settings.salt_bytes)


def derive_key(password: str, key_salt: str, settings: SecuritySettings | None = None) -> bytearray:
    """Derive the AES key from the master password and the stored key salt.

    The salt enters PBKDF2 as its hex text, not as decoded bytes.
    """
    settings = settings or SecuritySettings()
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=settings.key_bytes,
        salt=key_salt.encode("utf-8"),
        iterations=settings.pbkdf2_iterations,
    )
    return bytearray(kdf.derive(password.encode("utf-8")))


# --- AES-256-GCM ---

@dataclass(frozen=True)
class EncryptedPayload:
    ciphertext: str
    iv: str
    tag: str


def encrypt(plaintext: bytes | bytearray, key: bytes | bytearray,
            settings: SecuritySettings | None = None) -> EncryptedPayload:
    """Encrypt with a fresh random IV. Returns hex ciphertext, IV and tag."""
    settings = settings or SecuritySettings()
    iv = secrets.token_bytes(settings.iv_bytes)
    sealed = AESGCM(bytes(key)).encrypt(iv, bytes(plaintext), None)
    return EncryptedPayload(
        ciphertext=sealed[:-TAG_BYTES].hex(),
        iv=iv.hex(),
        tag=sealed[-TAG_BYTES:].hex(),
    )


def decrypt(ciphertext: str, key: bytes | bytearray, iv: str, tag: str) -> bytearray:
    """Authenticate and decrypt a hex payload into a mutable buffer."""
    try:
        sealed = bytes.fromhex(ciphertext) + bytes.fromhex(tag)
        plaintext = AESGCM(bytes(key)).decrypt(bytes.fromhex(iv), sealed, None)
    except (InvalidTag, ValueError) as e:
        raise DecryptionError("Decryption failed - invalid key or corrupted data") from e
    return bytearray(plaintext)
