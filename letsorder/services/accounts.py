"""
Account Service

Registration and login. Both end by issuing a session token through the
shared TokenIssuer, the same way invite redemption does.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from letsorder.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)
from letsorder.core.security import (
    MalformedHashError,
    TokenIssuer,
    burn_verification,
    hash_password,
    verify_password,
)
from letsorder.models import User

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def register_user(
    db: AsyncSession,
    issuer: TokenIssuer,
    email: str,
    password: str,
    phone: Optional[str] = None,
) -> tuple[str, User]:
    """
    Create an account and return ``(token, user)``.

    Raises:
        ConflictError: the email is already registered
    """
    if await get_user_by_email(db, email) is not None:
        raise ConflictError("User with this email already exists")

    password_hash = await asyncio.to_thread(hash_password, password)
    user = User(email=email, phone=phone, password_hash=password_hash)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        await db.rollback()
        raise ConflictError("User with this email already exists")

    logger.info(f"Registered user {user.id}")
    return issuer.issue(user.id, user.email), user


async def login(
    db: AsyncSession,
    issuer: TokenIssuer,
    email: str,
    password: str,
) -> tuple[str, User]:
    """
    Check credentials and return ``(token, user)``.

    Unknown email and wrong password produce the same error, and both run
    one full argon2 verification.

    Raises:
        AuthenticationError: bad credentials
        PersistenceError: the stored hash is corrupt
    """
    user = await get_user_by_email(db, email)
    if user is None:
        await asyncio.to_thread(burn_verification, password)
        raise AuthenticationError("Invalid credentials")

    try:
        matched = await asyncio.to_thread(verify_password, password, user.password_hash)
    except MalformedHashError as e:
        logger.error(f"Stored password hash for user {user.id} is malformed: {e}")
        raise PersistenceError()

    if not matched:
        raise AuthenticationError("Invalid credentials")

    return issuer.issue(user.id, user.email), user
