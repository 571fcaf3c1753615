# backend/app/security/tokens.py
"""Opaque random tokens (refresh, confirmation, reset, invitation)."""
import hashlib
import secrets


def generate_token(nbytes: int = 32) -> str:
    """URL-safe random token, 43 characters for the default 32 bytes."""
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    """
    SHA-256 hex digest used as the lookup key.

    Tokens carry 256 bits of entropy, so an unsalted fast hash is enough;
    the raw token is only ever held by the client.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
