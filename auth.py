"""
Identity provider for the reservation service.

Users register with email + password; signing in issues an opaque bearer
token stored in ``auth_tokens``. Every reservation route resolves the caller
through :func:`get_current_user`, so ownership is always taken from the token
and never from the request body.
"""
import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from werkzeug.security import check_password_hash, generate_password_hash

from database import get_session
from models import AuthToken, User, as_utc, utcnow
from settings import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def register_user(session: AsyncSession, email: str, password: str) -> User:
    user = User(email=normalize_email(email), password_hash=generate_password_hash(password))
    try:
        session.add(user)
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        # Unique index on users.email
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already registered",
        )
    logger.info("Registered user %s", user.id)
    return user


async def authenticate_user(session: AsyncSession, email: str, password: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    user = result.scalars().first()
    if user and check_password_hash(user.password_hash, password):
        return user
    return None


async def purge_dead_tokens(session: AsyncSession, user_id: str) -> None:
    """Drop the user's expired and revoked tokens; they can never authenticate again."""
    await session.execute(
        delete(AuthToken).where(
            AuthToken.user_id == user_id,
            or_(AuthToken.expires_at <= utcnow(), AuthToken.revoked_at.is_not(None)),
        ).execution_options(synchronize_session=False)
    )


async def issue_token(session: AsyncSession, user: User) -> AuthToken:
    user_id = user.id
    await purge_dead_tokens(session, user_id)
    token = AuthToken(
        token=secrets.token_urlsafe(32),
        user_id=user_id,
        expires_at=utcnow() + timedelta(hours=settings.token_ttl_hours),
    )
    session.add(token)
    await session.commit()
    await session.refresh(token)
    return token


async def revoke_token(session: AsyncSession, token: AuthToken) -> None:
    token.revoked_at = utcnow()
    session.add(token)
    await session.commit()


async def _resolve_token(session: AsyncSession, raw_token: str) -> Optional[AuthToken]:
    token = await session.get(AuthToken, raw_token)
    if token is None or token.revoked_at is not None or as_utc(token.expires_at) <= utcnow():
        return None
    return token


async def get_current_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> AuthToken:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise unauthorized

    token = await _resolve_token(session, credentials.credentials)
    if token is None:
        raise unauthorized
    return token


async def get_current_user(
    token: AuthToken = Depends(get_current_token),
    session: AsyncSession = Depends(get_session),
) -> User:
    user = await session.get(User, token.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
