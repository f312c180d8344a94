import pytest

from conftest import make_user
from letsorder.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from letsorder.models import ManagerRole, RestaurantManager
from letsorder.services import menu, restaurants


async def test_reorder_items_changes_menu_order(db, world):
    restaurant_id = world.restaurant.id
    burger_id, fries_id = world.burger.id, world.fries.id

    await menu.reorder_items(db, world.owner.id, restaurant_id, [
        {"item_id": burger_id, "display_order": 5},
        {"item_id": fries_id, "display_order": 0},
    ])

    sections = await menu.get_menu(db, world.owner.id, restaurant_id)
    names = [item["name"] for item in sections[0]["items"]]
    assert names[0] == "Fries"
    assert names[-1] == "Burger"


async def test_reorder_with_unknown_item_changes_nothing(db, world):
    restaurant_id = world.restaurant.id
    owner_id = world.owner.id
    fries_id, foreign_id = world.fries.id, world.foreign.id

    with pytest.raises(NotFoundError):
        await menu.reorder_items(db, owner_id, restaurant_id, [
            {"item_id": fries_id, "display_order": 9},
            {"item_id": foreign_id, "display_order": 0},
        ])

    sections = await menu.get_menu(db, owner_id, restaurant_id)
    fries = next(i for i in sections[0]["items"] if i["id"] == fries_id)
    assert fries["display_order"] == 1


async def test_reorder_requires_items(db, world):
    with pytest.raises(ValidationError):
        await menu.reorder_items(db, world.owner.id, world.restaurant.id, [])


async def test_reorder_requires_menu_capability(db, world):
    restaurant_id = world.restaurant.id
    burger_id = world.burger.id
    waiter = await make_user(db, "waiter@x.com")
    db.add(RestaurantManager(
        restaurant_id=restaurant_id,
        user_id=waiter.id,
        role=ManagerRole.MANAGER,
        can_manage_menu=False,
    ))
    await db.commit()

    with pytest.raises(AuthorizationError):
        await menu.reorder_items(db, waiter.id, restaurant_id, [
            {"item_id": burger_id, "display_order": 3},
        ])


async def test_item_description_can_be_cleared(db, world):
    item = await menu.update_item(
        db, world.owner.id, world.restaurant.id, world.burger.id, {"description": "Juicy"}
    )
    assert item.description == "Juicy"

    item = await menu.update_item(
        db, world.owner.id, world.restaurant.id, world.burger.id, {"description": None}
    )
    assert item.description is None


async def test_null_for_required_item_field_is_ignored(db, world):
    with pytest.raises(ValidationError):
        await menu.update_item(
            db, world.owner.id, world.restaurant.id, world.burger.id, {"name": None, "price": None}
        )


async def test_restaurant_address_can_be_cleared(db, world):
    restaurant = await restaurants.update_restaurant(
        db, world.owner.id, world.restaurant.id, {"address": None, "google_maps_link": None}
    )
    assert restaurant.address is None
    assert restaurant.name == "Trattoria Roma"


async def test_restaurant_name_cannot_be_nulled(db, world):
    with pytest.raises(ValidationError):
        await restaurants.update_restaurant(db, world.owner.id, world.restaurant.id, {"name": None})
