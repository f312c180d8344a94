"""
Menu Service

Sections and items of a restaurant's menu. Writes need the menu capability;
the public menu shown behind a table's QR code lists available items only.
"""

import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from letsorder.core.exceptions import NotFoundError, ValidationError
from letsorder.models import MenuItem, MenuSection, Restaurant
from letsorder.services.authorization import Capability, authorize
from letsorder.services.tables import get_table_by_code

logger = logging.getLogger(__name__)

ITEM_UPDATABLE_FIELDS = ("name", "description", "price", "available", "display_order")
ITEM_CLEARABLE_FIELDS = ("description",)


async def _next_display_order(db: AsyncSession, column, *criteria) -> int:
    result = await db.execute(select(func.max(column)).where(*criteria))
    current = result.scalar()
    return 0 if current is None else current + 1


async def _load_section(db: AsyncSession, restaurant_id: str, section_id: str) -> MenuSection:
    result = await db.execute(
        select(MenuSection).where(
            MenuSection.id == section_id,
            MenuSection.restaurant_id == restaurant_id,
        )
    )
    section = result.scalar_one_or_none()
    if section is None:
        raise NotFoundError("Menu section not found")
    return section


async def _load_item(db: AsyncSession, restaurant_id: str, item_id: str) -> MenuItem:
    result = await db.execute(
        select(MenuItem)
        .join(MenuSection, MenuSection.id == MenuItem.section_id)
        .where(MenuItem.id == item_id, MenuSection.restaurant_id == restaurant_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Menu item not found")
    return item


async def create_section(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    name: str,
    display_order: Optional[int] = None,
) -> MenuSection:
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)

    if display_order is None:
        display_order = await _next_display_order(
            db, MenuSection.display_order, MenuSection.restaurant_id == restaurant_id
        )

    section = MenuSection(restaurant_id=restaurant_id, name=name, display_order=display_order)
    db.add(section)
    await db.commit()
    logger.info(f"Menu section {section.id} created in restaurant {restaurant_id}")
    return section


async def create_item(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    section_id: str,
    name: str,
    price: float,
    description: Optional[str] = None,
    display_order: Optional[int] = None,
) -> MenuItem:
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)
    await _load_section(db, restaurant_id, section_id)

    if display_order is None:
        display_order = await _next_display_order(
            db, MenuItem.display_order, MenuItem.section_id == section_id
        )

    item = MenuItem(
        section_id=section_id,
        name=name,
        description=description,
        price=price,
        available=True,
        display_order=display_order,
    )
    db.add(item)
    await db.commit()
    logger.info(f"Menu item {item.id} created in section {section_id}")
    return item


async def update_item(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    item_id: str,
    changes: dict[str, Any],
) -> MenuItem:
    """
    Apply a partial update. Price changes never touch existing orders,
    which keep the price captured when they were placed.
    """
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)

    values = {
        k: v for k, v in changes.items()
        if k in ITEM_UPDATABLE_FIELDS and (v is not None or k in ITEM_CLEARABLE_FIELDS)
    }
    if not values:
        raise ValidationError("No fields to update")

    item = await _load_item(db, restaurant_id, item_id)
    for field, value in values.items():
        setattr(item, field, value)
    await db.commit()
    return item


async def delete_item(db: AsyncSession, user_id: str, restaurant_id: str, item_id: str) -> None:
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)
    item = await _load_item(db, restaurant_id, item_id)
    await db.delete(item)
    await db.commit()
    logger.info(f"Menu item {item_id} deleted from restaurant {restaurant_id}")


async def reorder_items(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    item_orders: list[dict],
) -> list[MenuItem]:
    """
    Set ``display_order`` for several items in one commit.

    Every item must belong to ``restaurant_id``; one unknown item rejects
    the whole batch.
    """
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)

    if not item_orders:
        raise ValidationError("No items to reorder")

    items = [await _load_item(db, restaurant_id, entry["item_id"]) for entry in item_orders]
    for item, entry in zip(items, item_orders):
        item.display_order = entry["display_order"]

    await db.commit()
    logger.info(f"Reordered {len(items)} menu item(s) in restaurant {restaurant_id}")
    return items


async def _sections_with_items(db: AsyncSession, restaurant_id: str) -> list[MenuSection]:
    result = await db.execute(
        select(MenuSection)
        .where(MenuSection.restaurant_id == restaurant_id)
        .options(selectinload(MenuSection.items))
        .order_by(MenuSection.display_order.asc(), MenuSection.created_at.asc())
    )
    return list(result.scalars().all())


def _section_view(section: MenuSection, available_only: bool = False) -> dict:
    return {
        "id": section.id,
        "restaurant_id": section.restaurant_id,
        "name": section.name,
        "display_order": section.display_order,
        "items": [
            {
                "id": item.id,
                "section_id": item.section_id,
                "name": item.name,
                "description": item.description,
                "price": item.price,
                "available": item.available,
                "display_order": item.display_order,
            }
            for item in section.items
            if item.available or not available_only
        ],
    }


async def get_menu(db: AsyncSession, user_id: str, restaurant_id: str) -> list[dict]:
    """Full menu for managers, unavailable items included."""
    await authorize(db, user_id, restaurant_id, Capability.VIEW)
    return [_section_view(s) for s in await _sections_with_items(db, restaurant_id)]


async def get_public_menu(db: AsyncSession, restaurant_id: str, table_code: str) -> dict:
    """Menu behind a table's QR code. No authentication."""
    table = await get_table_by_code(db, table_code)
    if table.restaurant_id != restaurant_id:
        raise NotFoundError("Invalid table code")

    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")

    sections = await _sections_with_items(db, restaurant_id)
    return {
        "restaurant_id": restaurant.id,
        "restaurant_name": restaurant.name,
        "restaurant_address": restaurant.address,
        "table_id": table.id,
        "table_name": table.name,
        "sections": [_section_view(s, available_only=True) for s in sections],
    }
