"""
Restaurant Service

Restaurant lifecycle and manager administration. Creation writes the
restaurant and its creator's super_admin grant in one transaction; every
other operation starts with ``authorize``.
"""

import logging
from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from letsorder.core.exceptions import NotFoundError, PersistenceError, ValidationError
from letsorder.models import ManagerRole, Restaurant, RestaurantManager, User
from letsorder.services.authorization import Capability, authorize

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "address", "establishment_year", "google_maps_link")
CLEARABLE_FIELDS = ("address", "establishment_year", "google_maps_link")


async def create_restaurant(
    db: AsyncSession,
    user_id: str,
    name: str,
    address: Optional[str] = None,
    establishment_year: Optional[int] = None,
    google_maps_link: Optional[str] = None,
) -> Restaurant:
    restaurant = Restaurant(
        name=name,
        address=address,
        establishment_year=establishment_year,
        google_maps_link=google_maps_link,
    )
    db.add(restaurant)
    try:
        await db.flush()
        db.add(RestaurantManager(
            restaurant_id=restaurant.id,
            user_id=user_id,
            role=ManagerRole.SUPER_ADMIN,
            can_manage_menu=True,
        ))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to create restaurant for user {user_id}: {e}")
        raise PersistenceError("Failed to create restaurant")

    logger.info(f"Restaurant {restaurant.id} created by user {user_id}")
    return restaurant


async def list_user_restaurants(db: AsyncSession, user_id: str) -> list[tuple[Restaurant, RestaurantManager]]:
    result = await db.execute(
        select(Restaurant, RestaurantManager)
        .join(RestaurantManager, RestaurantManager.restaurant_id == Restaurant.id)
        .where(RestaurantManager.user_id == user_id)
        .order_by(Restaurant.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def _load_restaurant(db: AsyncSession, restaurant_id: str) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    return restaurant


async def get_restaurant(db: AsyncSession, user_id: str, restaurant_id: str) -> Restaurant:
    await authorize(db, user_id, restaurant_id, Capability.VIEW)
    return await _load_restaurant(db, restaurant_id)


async def update_restaurant(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    changes: dict[str, Any],
) -> Restaurant:
    await authorize(db, user_id, restaurant_id, Capability.ADMINISTER)

    values = {
        k: v for k, v in changes.items()
        if k in UPDATABLE_FIELDS and (v is not None or k in CLEARABLE_FIELDS)
    }
    if not values:
        raise ValidationError("No fields to update")

    result = await db.execute(
        update(Restaurant).where(Restaurant.id == restaurant_id).values(**values)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Restaurant not found")
    await db.commit()

    restaurant = await _load_restaurant(db, restaurant_id)
    await db.refresh(restaurant)
    return restaurant


async def delete_restaurant(db: AsyncSession, user_id: str, restaurant_id: str) -> None:
    """Delete a restaurant; tables, menu, orders, grants and invites cascade."""
    await authorize(db, user_id, restaurant_id, Capability.ADMINISTER)

    result = await db.execute(delete(Restaurant).where(Restaurant.id == restaurant_id))
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Restaurant not found")
    await db.commit()
    logger.info(f"Restaurant {restaurant_id} deleted by user {user_id}")


async def list_managers(db: AsyncSession, user_id: str, restaurant_id: str) -> list[dict]:
    await authorize(db, user_id, restaurant_id, Capability.VIEW)
    return await _manager_rows(db, restaurant_id)


async def _manager_rows(db: AsyncSession, restaurant_id: str) -> list[dict]:
    result = await db.execute(
        select(RestaurantManager, User)
        .join(User, User.id == RestaurantManager.user_id)
        .where(RestaurantManager.restaurant_id == restaurant_id)
        .order_by(RestaurantManager.created_at.asc())
    )
    return [
        {
            "user_id": user.id,
            "email": user.email,
            "phone": user.phone,
            "role": grant.role.value,
            "can_manage_menu": grant.can_manage_menu,
            "created_at": grant.created_at,
        }
        for grant, user in result.all()
    ]


async def get_restaurant_with_managers(db: AsyncSession, user_id: str, restaurant_id: str) -> dict:
    restaurant = await get_restaurant(db, user_id, restaurant_id)
    return {
        "restaurant": restaurant,
        "managers": await _manager_rows(db, restaurant_id),
    }


async def remove_manager(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    manager_user_id: str,
) -> None:
    await authorize(db, user_id, restaurant_id, Capability.ADMINISTER)

    if manager_user_id == user_id:
        raise ValidationError("Cannot remove yourself")

    result = await db.execute(
        delete(RestaurantManager).where(
            RestaurantManager.restaurant_id == restaurant_id,
            RestaurantManager.user_id == manager_user_id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Manager not found")
    await db.commit()
    logger.info(f"User {manager_user_id} removed from restaurant {restaurant_id} by {user_id}")


async def update_manager_permissions(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    manager_user_id: str,
    can_manage_menu: bool,
) -> None:
    await authorize(db, user_id, restaurant_id, Capability.ADMINISTER)

    result = await db.execute(
        update(RestaurantManager)
        .where(
            RestaurantManager.restaurant_id == restaurant_id,
            RestaurantManager.user_id == manager_user_id,
        )
        .values(can_manage_menu=can_manage_menu)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Manager not found")
    await db.commit()
    logger.info(
        f"can_manage_menu={can_manage_menu} for user {manager_user_id} "
        f"in restaurant {restaurant_id}"
    )
