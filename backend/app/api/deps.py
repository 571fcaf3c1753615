# backend/app/api/deps.py
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import InvalidOrExpiredToken
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.security import jwt
from backend.app.services import identity

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login"
)


async def get_current_user(
        db: AsyncSession = Depends(get_db),
        token: str = Depends(reusable_oauth2)
) -> User:
    """
    Resolve the caller from the bearer token.

    The user id comes only from the verified "sub" claim; any user id sent
    by the client in headers, query or body is never trusted for identity.
    The token's session ("sid") must still be live, so logout and password
    changes end it before it expires.
    """
    token_data = jwt.decode_token(token, expected_type=jwt.ACCESS_TOKEN_TYPE)

    try:
        user_id = int(token_data.sub)
    except ValueError:
        raise InvalidOrExpiredToken()

    if not token_data.sid or not await identity.is_session_active(db, user_id, token_data.sid):
        raise InvalidOrExpiredToken("Session expired or revoked")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise InvalidOrExpiredToken()

    return user
