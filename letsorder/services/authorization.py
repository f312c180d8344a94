"""
Authorization Model

One entry point, ``authorize``, used by every restaurant-scoped operation.
Grants are read from storage on each call and never cached, so removing a
manager or toggling ``can_manage_menu`` applies to the very next request.

Axes:
    VIEW         any RestaurantManager row for (restaurant, caller)
    MANAGE_MENU  membership with can_manage_menu = true (menu, tables, QR)
    ADMINISTER   membership with role = super_admin (restaurant lifecycle,
                 manager invites/removal/permissions)
"""

import enum
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from letsorder.core.exceptions import AuthorizationError
from letsorder.models import ManagerRole, RestaurantManager

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    VIEW = "view"
    MANAGE_MENU = "manage_menu"
    ADMINISTER = "administer"


_DENIAL_MESSAGES = {
    Capability.VIEW: "Access denied",
    Capability.MANAGE_MENU: "Menu management permission required",
    Capability.ADMINISTER: "Super admin permission required",
}


def _grant_predicate(capability: Capability):
    if capability is Capability.MANAGE_MENU:
        return RestaurantManager.can_manage_menu.is_(True)
    if capability is Capability.ADMINISTER:
        return RestaurantManager.role == ManagerRole.SUPER_ADMIN
    return None


async def authorize(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    capability: Capability,
) -> RestaurantManager:
    """
    Require that ``user_id`` holds ``capability`` in ``restaurant_id``.

    Returns the caller's RestaurantManager row.

    Raises:
        AuthorizationError: no matching grant (also for unknown restaurants,
            so callers cannot probe which restaurant ids exist)
    """
    query = select(RestaurantManager).where(
        RestaurantManager.restaurant_id == restaurant_id,
        RestaurantManager.user_id == user_id,
    )
    predicate = _grant_predicate(capability)
    if predicate is not None:
        query = query.where(predicate)

    result = await db.execute(query)
    grant = result.scalar_one_or_none()

    if grant is None:
        logger.info(
            f"Denied {capability.value} on restaurant {restaurant_id} for user {user_id}"
        )
        raise AuthorizationError(_DENIAL_MESSAGES[capability])

    return grant
