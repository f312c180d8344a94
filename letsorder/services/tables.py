"""
Table Service

Tables and their public lookup codes. A lookup code is the only handle a
diner ever sees: it is printed in the QR code and resolves to exactly one
(restaurant, table) pair.
"""

import logging
import secrets
import string

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from letsorder.core.config import get_settings
from letsorder.core.exceptions import NotFoundError, PersistenceError
from letsorder.models import Table
from letsorder.services.authorization import Capability, authorize

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10


def generate_table_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


async def _code_in_use(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(Table.id).where(Table.unique_code == code))
    return result.first() is not None


async def _unused_code(db: AsyncSession) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_table_code()
        if not await _code_in_use(db, code):
            return code
    logger.error(f"No free table code after {MAX_CODE_ATTEMPTS} attempts")
    raise PersistenceError("Failed to generate unique table code")


async def _commit_code(db: AsyncSession, table: Table) -> None:
    code = table.unique_code
    try:
        await db.commit()
    except IntegrityError as e:
        # Another writer claimed the same code between check and commit
        await db.rollback()
        logger.error(f"Table code {code} collided on commit: {e.orig}")
        raise PersistenceError("Failed to generate unique table code")


async def get_table_by_code(db: AsyncSession, code: str) -> Table:
    result = await db.execute(select(Table).where(Table.unique_code == code))
    table = result.scalar_one_or_none()
    if table is None:
        raise NotFoundError("Invalid table code")
    return table


async def _load_table(db: AsyncSession, restaurant_id: str, table_id: str) -> Table:
    result = await db.execute(
        select(Table).where(Table.id == table_id, Table.restaurant_id == restaurant_id)
    )
    table = result.scalar_one_or_none()
    if table is None:
        raise NotFoundError("Table not found")
    return table


async def create_table(db: AsyncSession, user_id: str, restaurant_id: str, name: str) -> Table:
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)

    table = Table(restaurant_id=restaurant_id, name=name, unique_code=await _unused_code(db))
    db.add(table)
    await _commit_code(db, table)

    logger.info(f"Table {table.id} created in restaurant {restaurant_id}")
    return table


async def list_tables(db: AsyncSession, user_id: str, restaurant_id: str) -> list[Table]:
    await authorize(db, user_id, restaurant_id, Capability.VIEW)
    result = await db.execute(
        select(Table)
        .where(Table.restaurant_id == restaurant_id)
        .order_by(Table.created_at.desc())
    )
    return list(result.scalars().all())


async def rename_table(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    table_id: str,
    name: str,
) -> Table:
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)
    table = await _load_table(db, restaurant_id, table_id)
    table.name = name
    await db.commit()
    return table


async def delete_table(db: AsyncSession, user_id: str, restaurant_id: str, table_id: str) -> None:
    """Delete a table. Its orders go with it."""
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)
    result = await db.execute(
        delete(Table).where(Table.id == table_id, Table.restaurant_id == restaurant_id)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Table not found")
    await db.commit()
    logger.info(f"Table {table_id} deleted from restaurant {restaurant_id}")


async def refresh_table_code(
    db: AsyncSession,
    user_id: str,
    restaurant_id: str,
    table_id: str,
) -> Table:
    """Replace the lookup code; the previous one stops resolving at once."""
    await authorize(db, user_id, restaurant_id, Capability.MANAGE_MENU)
    table = await _load_table(db, restaurant_id, table_id)
    table.unique_code = await _unused_code(db)
    await _commit_code(db, table)
    logger.info(f"Lookup code refreshed for table {table_id}")
    return table


def build_menu_url(restaurant_id: str, code: str) -> str:
    base = get_settings().menu_base_url.rstrip("/")
    return f"{base}/m/{restaurant_id}/{code}"


async def get_qr_url(db: AsyncSession, user_id: str, restaurant_id: str, table_id: str) -> dict:
    await authorize(db, user_id, restaurant_id, Capability.VIEW)
    table = await _load_table(db, restaurant_id, table_id)
    return {
        "table_id": table.id,
        "table_name": table.name,
        "unique_code": table.unique_code,
        "qr_url": build_menu_url(restaurant_id, table.unique_code),
    }
