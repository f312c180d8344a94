"""
SQLAlchemy Database Models

Multi-tenant restaurant ordering:
- Users and their per-restaurant manager grants (role + menu capability)
- Single-use manager invites
- Tables addressed publicly by a lookup code
- Menu sections/items
- Orders holding an immutable JSON snapshot of their lines
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from letsorder.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ManagerRole(str, enum.Enum):
    """Role held inside one restaurant."""
    SUPER_ADMIN = "super_admin"
    MANAGER = "manager"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class User(Base):
    """
    A person who can log in. Created at registration or invite redemption.
    Only the password hash and verification flag change afterwards.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(32), nullable=True)
    password_hash = Column(String(255), nullable=False)
    email_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    memberships = relationship(
        "RestaurantManager",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<User {self.id} - {self.email}>"


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=True)
    establishment_year = Column(Integer, nullable=True)
    google_maps_link = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    managers = relationship(
        "RestaurantManager",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.name}>"


class RestaurantManager(Base):
    """
    Grant of access to one restaurant.

    The row's existence is membership; ``role`` and ``can_manage_menu`` are
    independent axes. Checked against storage on every request.
    """
    __tablename__ = "restaurant_managers"

    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    role = Column(
        Enum(ManagerRole, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    can_manage_menu = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    restaurant = relationship("Restaurant", back_populates="managers")
    user = relationship("User", back_populates="memberships")

    def __repr__(self):
        return f"<RestaurantManager {self.restaurant_id}/{self.user_id} - {self.role.value}>"


class ManagerInvite(Base):
    """
    Single-use invite binding one email to one restaurant.

    Deleted on redemption. Expired rows are left in place and simply never
    match the redemption lookup again.
    """
    __tablename__ = "manager_invites"
    __table_args__ = (
        Index("ix_manager_invites_restaurant_email", "restaurant_id", "email"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
    )
    email = Column(String(255), nullable=False)
    can_manage_menu = Column(Boolean, nullable=False, default=False)
    token = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<ManagerInvite {self.id} - {self.email}>"


class Table(Base):
    """A physical table; ``unique_code`` is the public ordering handle."""
    __tablename__ = "tables"

    id = Column(String(36), primary_key=True, default=_uuid)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    unique_code = Column(String(16), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    restaurant = relationship("Restaurant")

    def __repr__(self):
        return f"<Table {self.id} - {self.name} ({self.unique_code})>"


class MenuSection(Base):
    __tablename__ = "menu_sections"

    id = Column(String(36), primary_key=True, default=_uuid)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(200), nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    items = relationship(
        "MenuItem",
        back_populates="section",
        order_by="MenuItem.display_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    section_id = Column(
        String(36),
        ForeignKey("menu_sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    section = relationship("MenuSection", back_populates="items")


class Order(Base):
    """
    A diner's order. Append-only except for ``status``.

    ``items`` is the JSON-serialised line snapshot
    ``[{menu_item_id, quantity, price, notes}]``; ``total_amount`` is the sum
    of snapshot price x quantity and is never recomputed from the menu.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    table_id = Column(
        String(36),
        ForeignKey("tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    items = Column(Text, nullable=False)  # JSON string of line snapshots
    total_amount = Column(Float, nullable=False)
    status = Column(
        Enum(OrderStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    customer_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    table = relationship("Table")

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value} - {self.total_amount}>"
