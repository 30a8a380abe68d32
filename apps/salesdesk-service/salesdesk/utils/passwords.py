"""
Password hashing and verification.

Responsibilities:
- Hash new passwords with Argon2id (salt is embedded in the encoded hash)
- Verify Argon2id hashes and the two legacy scrypt encodings still present in
  migrated data: ``<salt>:<hex>`` and ``<hex>.<salt>``
- Generate random passwords for resets
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
import string

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from argon2.low_level import Type

_argon2 = PasswordHasher(time_cost=2, memory_cost=102400, parallelism=8, hash_len=32, type=Type.ID)

# Parameters used by the legacy Node.js scrypt hashes (crypto.scrypt defaults)
_SCRYPT_N = 16384
_SCRYPT_R = 8
_SCRYPT_P = 1
_SCRYPT_KEYLEN = 64

_GENERATED_ALPHABET = string.ascii_letters + string.digits


def hash_password(plaintext: str) -> str:
    """Hash a password using Argon2id."""
    return _argon2.hash(plaintext)


def _scrypt_verify(plaintext: str, salt: str, hex_digest: str) -> bool:
    try:
        expected = bytes.fromhex(hex_digest)
    except ValueError:
        return False
    derived = hashlib.scrypt(
        plaintext.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_SCRYPT_KEYLEN,
    )
    return hmac.compare_digest(derived, expected)


def verify_password(plaintext: str, encoded_hash: str) -> bool:
    if not plaintext or not encoded_hash:
        return False
    if encoded_hash.startswith("$argon2"):
        try:
            return _argon2.verify(encoded_hash, plaintext)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False
    if ":" in encoded_hash:
        salt, _, digest = encoded_hash.partition(":")
        return _scrypt_verify(plaintext, salt, digest)
    if "." in encoded_hash:
        digest, _, salt = encoded_hash.partition(".")
        return _scrypt_verify(plaintext, salt, digest)
    # Unknown scheme
    return False


def needs_rehash(encoded_hash: str) -> bool:
    """True for legacy scrypt hashes and Argon2 hashes with outdated parameters."""
    if not encoded_hash.startswith("$argon2"):
        return True
    try:
        return _argon2.check_needs_rehash(encoded_hash)
    except InvalidHashError:
        return True


def generate_password(length: int = 12) -> str:
    """Return a random alphanumeric password."""
    return "".join(secrets.choice(_GENERATED_ALPHABET) for _ in range(length))
