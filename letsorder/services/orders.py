"""
Order Service

Placement:
    table code -> Table (restaurant scope comes from here, never from the client)
    each line  -> available MenuItem of that restaurant, positive quantity
    snapshot   -> unit price captured now, total = sum(price x quantity)
    persist    -> one INSERT of the order row with all lines serialised in it

Any failing line rejects the whole order, and since the lines live inside the
single order row there is no state where only some of them were written.

Queries rebuild an enriched view from the stored snapshot. Menu items are
looked up only for their current display name; a deleted item shows as
"Unknown Item" and keeps its snapshot price.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from letsorder.core.exceptions import NotFoundError, PersistenceError, ValidationError
from letsorder.models import MenuItem, MenuSection, Order, OrderStatus, Restaurant, Table, utcnow
from letsorder.services.authorization import Capability, authorize
from letsorder.services.tables import get_table_by_code

logger = logging.getLogger(__name__)

UNKNOWN_ITEM_NAME = "Unknown Item"


class CorruptOrderError(ValueError):
    """A stored line snapshot could not be read back."""


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# PLACEMENT
# =============================================================================

async def _resolve_menu_item(db: AsyncSession, restaurant_id: str, menu_item_id: str) -> Optional[MenuItem]:
    result = await db.execute(
        select(MenuItem)
        .join(MenuSection, MenuSection.id == MenuItem.section_id)
        .where(
            MenuItem.id == menu_item_id,
            MenuSection.restaurant_id == restaurant_id,
            MenuItem.available.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def place_order(
    db: AsyncSession,
    table_code: str,
    items: list[dict],
    customer_name: Optional[str] = None,
) -> dict:
    """
    Validate, price and persist a diner's order.

    Args:
        table_code: public lookup code of the table
        items: ``[{"menu_item_id", "quantity", "special_requests"?}]``
        customer_name: optional display name

    Returns:
        ``{"order_id", "total_amount", "status", "created_at"}``

    Raises:
        NotFoundError: unknown table code
        ValidationError: empty order, bad quantity, or an item that is
            unknown, unavailable or from another restaurant
        PersistenceError: the insert failed (nothing was written)
    """
    table = await get_table_by_code(db, table_code)
    restaurant_id = table.restaurant_id

    if not items:
        raise ValidationError("Order must contain at least one item")

    snapshot = []
    total = 0.0
    for line in items:
        menu_item_id = line["menu_item_id"]
        quantity = line["quantity"]

        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(f"Invalid quantity for menu item {menu_item_id}")

        menu_item = await _resolve_menu_item(db, restaurant_id, menu_item_id)
        if menu_item is None:
            raise ValidationError(f"Menu item {menu_item_id} not found or not available")

        snapshot.append({
            "menu_item_id": menu_item.id,
            "quantity": quantity,
            "price": menu_item.price,
            "notes": line.get("special_requests"),
        })
        total += menu_item.price * quantity

    order = Order(
        table_id=table.id,
        items=json.dumps(snapshot),
        total_amount=round(total, 2),
        status=OrderStatus.PENDING,
        customer_name=customer_name,
    )
    db.add(order)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to persist order for table {table.id}: {e}")
        raise PersistenceError("Failed to create order")

    logger.info(
        f"Order {order.id} placed at table {table.id}: "
        f"{len(snapshot)} line(s), total {order.total_amount}"
    )

    return {
        "order_id": order.id,
        "total_amount": order.total_amount,
        "status": order.status.value,
        "created_at": _as_utc(order.created_at),
    }


# =============================================================================
# RECONSTRUCTION
# =============================================================================

def parse_lines(raw: str) -> list[dict]:
    """Read a stored snapshot back; raises CorruptOrderError if unreadable."""
    try:
        lines = json.loads(raw)
        return [
            {
                "menu_item_id": str(line["menu_item_id"]),
                "quantity": int(line["quantity"]),
                "price": float(line["price"]),
                "notes": line.get("notes"),
            }
            for line in lines
        ]
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise CorruptOrderError(str(e)) from e


async def _current_item_names(db: AsyncSession, item_ids: set[str]) -> dict[str, str]:
    if not item_ids:
        return {}
    result = await db.execute(
        select(MenuItem.id, MenuItem.name).where(MenuItem.id.in_(item_ids))
    )
    return {row.id: row.name for row in result.all()}


def _order_view(
    order: Order,
    table: Table,
    restaurant: Restaurant,
    lines: list[dict],
    names: dict[str, str],
) -> dict:
    return {
        "id": order.id,
        "table_id": table.id,
        "table_name": table.name,
        "restaurant_id": restaurant.id,
        "restaurant_name": restaurant.name,
        "items": [
            {
                "menu_item_id": line["menu_item_id"],
                "menu_item_name": names.get(line["menu_item_id"], UNKNOWN_ITEM_NAME),
                "quantity": line["quantity"],
                "price": line["price"],
                "special_requests": line["notes"],
            }
            for line in lines
        ],
        "total_amount": order.total_amount,
        "status": order.status.value,
        "customer_name": order.customer_name,
        "created_at": _as_utc(order.created_at),
    }


async def _enrich(db: AsyncSession, rows) -> list[dict]:
    """Build views for (order, table, restaurant) rows, skipping unreadable ones."""
    parsed = []
    for order, table, restaurant in rows:
        try:
            parsed.append((order, table, restaurant, parse_lines(order.items)))
        except CorruptOrderError as e:
            logger.error(f"Skipping order {order.id} with unreadable items: {e}")

    item_ids = {line["menu_item_id"] for *_, lines in parsed for line in lines}
    names = await _current_item_names(db, item_ids)
    return [_order_view(o, t, r, lines, names) for o, t, r, lines in parsed]


def _orders_query():
    return (
        select(Order, Table, Restaurant)
        .join(Table, Table.id == Order.table_id)
        .join(Restaurant, Restaurant.id == Table.restaurant_id)
    )


async def get_order(db: AsyncSession, order_id: str) -> dict:
    """Public order detail, looked up by id."""
    result = await db.execute(_orders_query().where(Order.id == order_id))
    row = result.first()
    if row is None:
        raise NotFoundError("Order not found")

    order, table, restaurant = row
    try:
        lines = parse_lines(order.items)
    except CorruptOrderError as e:
        logger.error(f"Order {order.id} has unreadable items: {e}")
        raise PersistenceError()

    names = await _current_item_names(db, {line["menu_item_id"] for line in lines})
    return _order_view(order, table, restaurant, lines, names)


async def list_restaurant_orders(db: AsyncSession, user_id: str, restaurant_id: str) -> list[dict]:
    await authorize(db, user_id, restaurant_id, Capability.VIEW)
    result = await db.execute(
        _orders_query()
        .where(Table.restaurant_id == restaurant_id)
        .order_by(Order.created_at.desc())
    )
    return await _enrich(db, result.all())


async def list_today_orders(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    now: Optional[datetime] = None,
) -> list[dict]:
    """Orders created during the current UTC calendar day."""
    await authorize(db, user_id, restaurant_id, Capability.VIEW)

    now = now or utcnow()
    day_start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1)

    result = await db.execute(
        _orders_query()
        .where(
            Table.restaurant_id == restaurant_id,
            Order.created_at >= day_start,
            Order.created_at < day_end,
        )
        .order_by(Order.created_at.desc())
    )
    return await _enrich(db, result.all())


async def list_table_orders(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    table_id: str,
) -> list[dict]:
    await authorize(db, user_id, restaurant_id, Capability.VIEW)

    table = await db.get(Table, table_id)
    if table is None or table.restaurant_id != restaurant_id:
        raise NotFoundError("Table not found")

    result = await db.execute(
        _orders_query()
        .where(Order.table_id == table_id)
        .order_by(Order.created_at.desc())
    )
    return await _enrich(db, result.all())


async def update_order_status(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    order_id: str,
    status: OrderStatus,
) -> dict:
    """Move an order to ``status``. Nothing else about an order ever changes."""
    await authorize(db, user_id, restaurant_id, Capability.VIEW)

    result = await db.execute(
        select(Order)
        .join(Table, Table.id == Order.table_id)
        .where(Order.id == order_id, Table.restaurant_id == restaurant_id)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")

    previous = order.status
    order.status = OrderStatus(status)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Failed to update status of order {order_id}: {e}")
        raise PersistenceError("Failed to update order")

    logger.info(f"Order {order_id}: {previous.value} -> {order.status.value} by user {user_id}")
    return await get_order(db, order_id)
