"""
Manager Invitation Workflow

Invite lifecycle: Issued -> Redeemed (row deleted) | Expired (row left in
place, never matches the redemption lookup again).

Redemption is the only unauthenticated path that creates a grant: the token
plus the exact invited email is the credential. Resolving the user, inserting
the grant and consuming the invite commit together or not at all. The invite
is consumed with a conditional DELETE whose affected-row count must be 1, so
of two concurrent redemptions of the same token only one can commit; the
other rolls back its grant.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from letsorder.core.config import get_settings
from letsorder.core.exceptions import ConflictError, PersistenceError, ValidationError
from letsorder.core.security import TokenIssuer, hash_password
from letsorder.models import (
    ManagerInvite,
    ManagerRole,
    Restaurant,
    RestaurantManager,
    User,
    utcnow,
)
from letsorder.services.accounts import get_user_by_email
from letsorder.services.authorization import Capability, authorize
from letsorder.services.notifications import BaseNotificationService

logger = logging.getLogger(__name__)

# Same message for unknown, expired and already-consumed tokens
INVALID_INVITE_MESSAGE = "Invalid or expired invite token"


@dataclass
class IssuedInvite:
    invite_token: str
    expires_at: datetime


def generate_invite_token() -> str:
    return secrets.token_urlsafe(32)


def build_invite_url(restaurant_id: str, token: str) -> str:
    settings = get_settings()
    return f"{settings.app_base_url.rstrip('/')}/restaurants/{restaurant_id}/join/{token}"


async def _is_manager_email(db: AsyncSession, restaurant_id: str, email: str) -> bool:
    result = await db.execute(
        select(func.count())
        .select_from(RestaurantManager)
        .join(User, User.id == RestaurantManager.user_id)
        .where(RestaurantManager.restaurant_id == restaurant_id, User.email == email)
    )
    return (result.scalar() or 0) > 0


async def issue_invite(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    email: str,
    can_manage_menu: bool,
    notifier: Optional[BaseNotificationService] = None,
    now: Optional[datetime] = None,
) -> IssuedInvite:
    """
    Create a single-use invite for ``email`` (caller must be super_admin).

    Raises:
        AuthorizationError: caller is not super_admin of the restaurant
        ConflictError: email already manages the restaurant, or an unexpired
            invite for (restaurant, email) exists
    """
    await authorize(db, user_id, restaurant_id, Capability.ADMINISTER)
    now = now or utcnow()

    if await _is_manager_email(db, restaurant_id, email):
        raise ConflictError("User is already a manager of this restaurant")

    pending = await db.execute(
        select(func.count())
        .select_from(ManagerInvite)
        .where(
            ManagerInvite.restaurant_id == restaurant_id,
            ManagerInvite.email == email,
            ManagerInvite.expires_at > now,
        )
    )
    if (pending.scalar() or 0) > 0:
        raise ConflictError("Active invite already exists for this email")

    expires_at = now + timedelta(days=get_settings().invite_expiration_days)
    invite = ManagerInvite(
        restaurant_id=restaurant_id,
        email=email,
        can_manage_menu=can_manage_menu,
        token=generate_invite_token(),
        expires_at=expires_at,
    )
    db.add(invite)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to create invite for restaurant {restaurant_id}: {e}")
        raise PersistenceError("Failed to create invite")

    logger.info(f"Invite {invite.id} issued for restaurant {restaurant_id} by user {user_id}")

    if notifier is not None:
        await _send_invite_email(db, notifier, invite, expires_at)

    return IssuedInvite(invite_token=invite.token, expires_at=expires_at)


async def _send_invite_email(
    db: AsyncSession,
    notifier: BaseNotificationService,
    invite: ManagerInvite,
    expires_at: datetime,
) -> None:
    """Best effort: the invite stands even if the email cannot be sent."""
    restaurant = await db.get(Restaurant, invite.restaurant_id)
    result = await notifier.send_manager_invite(
        to_email=invite.email,
        restaurant_name=restaurant.name if restaurant else "a restaurant",
        invite_url=build_invite_url(invite.restaurant_id, invite.token),
        can_manage_menu=invite.can_manage_menu,
        expires_at_text=expires_at.strftime("%Y-%m-%d %H:%M UTC"),
    )
    if not result.success:
        logger.warning(
            f"Invite {invite.id} email via {result.provider} failed: {result.error_message}"
        )


async def _find_redeemable_invite(
    db: AsyncSession,
    restaurant_id: str,
    token: str,
    now: datetime,
) -> Optional[ManagerInvite]:
    result = await db.execute(
        select(ManagerInvite).where(
            ManagerInvite.restaurant_id == restaurant_id,
            ManagerInvite.token == token,
            ManagerInvite.expires_at > now,
        )
    )
    return result.scalar_one_or_none()


async def redeem_invite(
    db: AsyncSession,
    issuer: TokenIssuer,
    restaurant_id: str,
    token: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> tuple[str, User]:
    """
    Redeem an invite and return ``(session_token, user)``.

    An existing account with the invited email is reused (its password is
    left untouched); otherwise a new account is created with ``password``.

    Raises:
        ValidationError: unknown/expired/consumed token, or email mismatch
        ConflictError: the account already manages the restaurant
        PersistenceError: store failure (nothing is applied)
    """
    now = now or utcnow()

    invite = await _find_redeemable_invite(db, restaurant_id, token, now)
    if invite is None:
        raise ValidationError(INVALID_INVITE_MESSAGE)

    if invite.email != email:
        raise ValidationError("Email does not match invite")

    invite_id = invite.id
    can_manage_menu = invite.can_manage_menu

    try:
        user = await get_user_by_email(db, email)
        if user is not None:
            existing = await db.execute(
                select(RestaurantManager.user_id).where(
                    RestaurantManager.restaurant_id == restaurant_id,
                    RestaurantManager.user_id == user.id,
                )
            )
            if existing.first() is not None:
                await db.rollback()
                raise ConflictError("User is already a manager of this restaurant")
        else:
            password_hash = await asyncio.to_thread(hash_password, password)
            user = User(email=email, phone=phone, password_hash=password_hash)
            db.add(user)
            await db.flush()

        db.add(RestaurantManager(
            restaurant_id=restaurant_id,
            user_id=user.id,
            role=ManagerRole.MANAGER,
            can_manage_menu=can_manage_menu,
        ))
        await db.flush()

        consumed = await db.execute(
            delete(ManagerInvite)
            .where(ManagerInvite.id == invite_id)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount != 1:
            # Another redemption committed first
            await db.rollback()
            logger.info(f"Invite {invite_id} was consumed concurrently; grant rolled back")
            raise ValidationError(INVALID_INVITE_MESSAGE)

        await db.commit()

    except IntegrityError as e:
        await db.rollback()
        logger.info(f"Invite {invite_id} redemption hit a constraint: {e.orig}")
        if await _find_redeemable_invite(db, restaurant_id, token, now) is None:
            raise ValidationError(INVALID_INVITE_MESSAGE)
        raise ConflictError("User is already a manager of this restaurant")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to redeem invite {invite_id}: {e}")
        raise PersistenceError("Failed to join restaurant")

    logger.info(f"Invite {invite_id} redeemed: user {user.id} joined restaurant {restaurant_id}")
    return issuer.issue(user.id, user.email), user
