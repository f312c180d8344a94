"""
Shared fixtures.

Every test gets its own SQLite database file, a session on it, and (for
HTTP tests) an httpx client wired to the app with ``get_db`` pointed at
that database.
"""

import os

# Must be set before letsorder is imported: the module-level engine and
# settings are built at import time.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENV_MODE"] = "development"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-secret"

from types import SimpleNamespace

import httpx
import pytest

from letsorder.core.security import TokenIssuer, get_token_issuer, hash_password
from letsorder.database import build_engine, build_session_maker, get_db, init_db
from letsorder.main import app
from letsorder.models import (
    ManagerRole,
    MenuItem,
    MenuSection,
    Restaurant,
    RestaurantManager,
    Table,
    User,
)
from letsorder.services.notifications import MockNotificationService, reset_notification_service
from letsorder.services.ratelimit import InMemoryRateLimiter, get_rate_limiter, reset_rate_limiter

PASSWORD = "correct-horse-battery"


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'letsorder.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def issuer():
    return TokenIssuer(secret="test-secret", expiration_hours=24)


@pytest.fixture
def notifier():
    return MockNotificationService()


@pytest.fixture
def limiter():
    return InMemoryRateLimiter(max_requests=1000, window_seconds=60)


@pytest.fixture
async def client(session_maker, issuer, limiter):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_issuer] = lambda: issuer
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    reset_notification_service()
    reset_rate_limiter()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def make_user(db, email: str, password: str = PASSWORD) -> User:
    user = User(email=email, password_hash=hash_password(password))
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def world(db):
    """
    Owner U1 running restaurant R (one table, three items, one of them
    unavailable) and an unrelated restaurant R2 with its own item.
    """
    owner = await make_user(db, "owner@example.com")

    restaurant = Restaurant(name="Trattoria Roma", address="1 Via Appia")
    other = Restaurant(name="Elsewhere Diner")
    db.add_all([restaurant, other])
    await db.flush()
    db.add(RestaurantManager(
        restaurant_id=restaurant.id,
        user_id=owner.id,
        role=ManagerRole.SUPER_ADMIN,
        can_manage_menu=True,
    ))

    mains = MenuSection(restaurant_id=restaurant.id, name="Mains", display_order=0)
    foreign_section = MenuSection(restaurant_id=other.id, name="Foreign", display_order=0)
    db.add_all([mains, foreign_section])
    await db.flush()

    burger = MenuItem(section_id=mains.id, name="Burger", price=9.5, display_order=0)
    fries = MenuItem(section_id=mains.id, name="Fries", price=3.25, display_order=1)
    sold_out = MenuItem(section_id=mains.id, name="Truffle Pasta", price=21.0, available=False, display_order=2)
    foreign = MenuItem(section_id=foreign_section.id, name="Foreign Soup", price=4.0, display_order=0)
    db.add_all([burger, fries, sold_out, foreign])

    table = Table(restaurant_id=restaurant.id, name="Table 1", unique_code="K7Q2M9XA")
    other_table = Table(restaurant_id=other.id, name="Other 1", unique_code="OTHER001")
    db.add_all([table, other_table])
    await db.commit()

    return SimpleNamespace(
        owner=owner,
        restaurant=restaurant,
        other=other,
        mains=mains,
        burger=burger,
        fries=fries,
        sold_out=sold_out,
        foreign=foreign,
        table=table,
        other_table=other_table,
    )
