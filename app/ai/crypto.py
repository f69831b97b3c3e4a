"""
Server-side encryption for stored provider API keys.

Keys are encrypted with AES-256-GCM. The AES key is the SHA-256 digest of
the deployment secret (settings.AI_ENCRYPTION_SECRET), so any secret
string works and rotating it invalidates every stored ``v1:`` key.

Payload formats:
    v1:<base64 iv>:<base64 ciphertext+tag>  - encrypted here
    v2:...                                  - encrypted on the client, opaque here
    anything else                           - legacy plaintext row

Usage:
    from ai.crypto import encrypt_api_key, decrypt_api_key

    stored = encrypt_api_key("sk-...", secret)
    plain = decrypt_api_key(stored, secret)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import CredentialDecryptionError, CredentialError

SERVER_PREFIX = "v1:"
CLIENT_PREFIX = "v2:"

NONCE_BYTES = 12


def is_server_encrypted(payload: str) -> bool:
    return payload.startswith(SERVER_PREFIX)


def is_client_encrypted(payload: str) -> bool:
    return payload.startswith(CLIENT_PREFIX)


def _derive_key(secret: str) -> AESGCM:
    return AESGCM(hashlib.sha256(secret.encode("utf-8")).digest())


def encrypt_api_key(plaintext: str, secret: str) -> str:
    """
    Encrypt an API key into the ``v1:`` format.

    Raises:
        CredentialError: If no encryption secret is configured
    """
    if not secret:
        raise CredentialError(
            "Missing encryption secret",
            error_code="ENCRYPTION_SECRET_MISSING",
        )

    nonce = os.urandom(NONCE_BYTES)
    ciphertext = _derive_key(secret).encrypt(nonce, plaintext.encode("utf-8"), None)

    return (
        f"{SERVER_PREFIX}"
        f"{base64.b64encode(nonce).decode('ascii')}:"
        f"{base64.b64encode(ciphertext).decode('ascii')}"
    )


def decrypt_api_key(payload: str, secret: str | None) -> str:
    """
    Decrypt a ``v1:`` payload; other payloads are returned unchanged.

    Callers must check for the client format first: a ``v2:`` payload is
    returned as-is by this function.

    Raises:
        CredentialDecryptionError: Missing secret, malformed payload,
            or authentication tag mismatch (wrong secret, tampered data)
    """
    if not is_server_encrypted(payload):
        return payload

    if not secret:
        raise CredentialDecryptionError("Missing encryption secret")

    parts = payload[len(SERVER_PREFIX) :].split(":")
    if len(parts) != 2:
        raise CredentialDecryptionError("Invalid encrypted payload")

    try:
        nonce = base64.b64decode(parts[0], validate=True)
        ciphertext = base64.b64decode(parts[1], validate=True)
        plaintext = _derive_key(secret).decrypt(nonce, ciphertext, None)
    except (binascii.Error, ValueError, InvalidTag) as e:
        raise CredentialDecryptionError(
            "Failed to decrypt API key",
            details={"reason": e.__class__.__name__},
        ) from e

    return plaintext.decode("utf-8")
