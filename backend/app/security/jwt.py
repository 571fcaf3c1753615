# backend/app/security/jwt.py
"""
Signed JWTs (python-jose).

Two token types share the signing key and are never interchangeable:
- "access": the bearer credential for API calls
- "2fa_pending": proves the password step passed, only accepted by /2fa/verify
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from backend.app.core.config import settings
from backend.app.core.exceptions import InvalidOrExpiredToken
from backend.app.schemas.user import TokenPayload

ACCESS_TOKEN_TYPE = "access"
TWO_FACTOR_PENDING_TYPE = "2fa_pending"


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    token_type: str = ACCESS_TOKEN_TYPE,
) -> str:
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = data.copy()
    to_encode.update({
        "typ": token_type,
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> TokenPayload:
    """
    Verify signature, expiry and type.

    Raises InvalidOrExpiredToken for any failure; the caller never learns
    which check failed.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise InvalidOrExpiredToken()

    if token_data.typ != expected_type:
        raise InvalidOrExpiredToken()

    return token_data
