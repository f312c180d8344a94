"""
FastAPI Application Entry Point

LetsOrder - multi-tenant restaurant ordering backend.

Endpoints:
    - /auth/*: Registration, login, current user
    - /restaurants/*: Restaurant lifecycle, managers and invites
    - /restaurants/{id}/tables/*, /restaurants/{id}/menu/*: Tables and menu
    - POST /orders, GET /orders/{id}: Public ordering
    - /restaurants/{id}/orders/*: Manager order views
    - GET /menu/{restaurant_id}/{table_code}: Public menu
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from letsorder.core.config import get_settings, setup_logging
from letsorder.core.exceptions import LetsOrderError
from letsorder.core.security import TokenIssuer, get_token_issuer
from letsorder.database import engine, get_db, init_db
from letsorder.dependencies import get_current_user_id, rate_limit
from letsorder.models import OrderStatus
from letsorder.schemas import (
    AuthResponse,
    ErrorResponse,
    HealthResponse,
    InviteManagerRequest,
    InviteResponse,
    JoinRestaurantRequest,
    LoginRequest,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuSectionCreate,
    MenuSectionResponse,
    MyRestaurantResponse,
    ManagerInfo,
    OrderCreate,
    OrderCreateResponse,
    OrderResponse,
    OrderStatusUpdate,
    PublicMenuResponse,
    QrUrlResponse,
    RegisterRequest,
    ReorderItemsRequest,
    RestaurantCreate,
    RestaurantResponse,
    RestaurantUpdate,
    RestaurantWithManagers,
    TableCreate,
    TableResponse,
    TableUpdate,
    UpdateManagerPermissionsRequest,
    UserResponse,
)
from letsorder.services import (
    accounts,
    invitations,
    menu,
    orders,
    restaurants,
    tables,
)
from letsorder.services.notifications import get_notification_service
from letsorder.services.ratelimit import get_rate_limiter, reset_rate_limiter

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    notifier = get_notification_service()
    limiter = get_rate_limiter()
    logger.info(f"Notification Service: {notifier.provider_name}")
    logger.info(f"Rate Limiter: {limiter.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await limiter.close()
    reset_rate_limiter()
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering backend: manager access control with invite "
        "onboarding, and public table-code ordering with price snapshots."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        db_status = "unhealthy"
        logger.error(f"Database health check failed: {e}")

    limiter_status = "healthy" if await get_rate_limiter().health_check() else "unhealthy"
    notifier_status = "healthy" if await get_notification_service().health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, limiter_status, notifier_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        rate_limiter=limiter_status,
        notification_service=notifier_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# AUTH ENDPOINTS
# =============================================================================

@app.post(
    "/auth/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    tags=["Auth"],
    dependencies=[Depends(rate_limit)],
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthResponse:
    token, user = await accounts.register_user(db, issuer, body.email, body.password, body.phone)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@app.post(
    "/auth/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    tags=["Auth"],
    dependencies=[Depends(rate_limit)],
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthResponse:
    token, user = await accounts.login(db, issuer, body.email, body.password)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@app.get("/auth/me", response_model=UserResponse, tags=["Auth"])
async def me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    return UserResponse.model_validate(await accounts.get_user(db, user_id))


# =============================================================================
# RESTAURANT ENDPOINTS
# =============================================================================

@app.post(
    "/restaurants",
    response_model=RestaurantResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Restaurants"],
)
async def create_restaurant(
    body: RestaurantCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    restaurant = await restaurants.create_restaurant(
        db,
        user_id,
        name=body.name,
        address=body.address,
        establishment_year=body.establishment_year,
        google_maps_link=body.google_maps_link,
    )
    return RestaurantResponse.model_validate(restaurant)


@app.get("/restaurants", response_model=list[MyRestaurantResponse], tags=["Restaurants"])
async def list_my_restaurants(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[MyRestaurantResponse]:
    rows = await restaurants.list_user_restaurants(db, user_id)
    return [
        MyRestaurantResponse(
            **RestaurantResponse.model_validate(restaurant).model_dump(),
            role=grant.role.value,
            can_manage_menu=grant.can_manage_menu,
        )
        for restaurant, grant in rows
    ]


@app.get(
    "/restaurants/{restaurant_id}",
    response_model=RestaurantWithManagers,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def get_restaurant(
    restaurant_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> RestaurantWithManagers:
    data = await restaurants.get_restaurant_with_managers(db, user_id, restaurant_id)
    return RestaurantWithManagers(
        restaurant=RestaurantResponse.model_validate(data["restaurant"]),
        managers=[ManagerInfo(**m) for m in data["managers"]],
    )


@app.put(
    "/restaurants/{restaurant_id}",
    response_model=RestaurantResponse,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def update_restaurant(
    restaurant_id: str,
    body: RestaurantUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    restaurant = await restaurants.update_restaurant(
        db, user_id, restaurant_id, body.model_dump(exclude_unset=True)
    )
    return RestaurantResponse.model_validate(restaurant)


@app.delete(
    "/restaurants/{restaurant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def delete_restaurant(
    restaurant_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await restaurants.delete_restaurant(db, user_id, restaurant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# MANAGER ENDPOINTS
# =============================================================================

@app.get(
    "/restaurants/{restaurant_id}/managers",
    response_model=list[ManagerInfo],
    responses=ERROR_RESPONSES,
    tags=["Managers"],
)
async def list_managers(
    restaurant_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[ManagerInfo]:
    return [ManagerInfo(**m) for m in await restaurants.list_managers(db, user_id, restaurant_id)]


@app.post(
    "/restaurants/{restaurant_id}/managers/invite",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}},
    tags=["Managers"],
    summary="Invite a manager (super_admin only)",
)
async def invite_manager(
    restaurant_id: str,
    body: InviteManagerRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> InviteResponse:
    issued = await invitations.issue_invite(
        db,
        user_id,
        restaurant_id,
        email=body.email,
        can_manage_menu=body.can_manage_menu,
        notifier=get_notification_service(),
    )
    return InviteResponse(invite_token=issued.invite_token, expires_at=issued.expires_at)


@app.post(
    "/restaurants/{restaurant_id}/managers/join/{token}",
    response_model=AuthResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    tags=["Managers"],
    summary="Redeem a manager invite (public)",
    dependencies=[Depends(rate_limit)],
)
async def join_restaurant(
    restaurant_id: str,
    token: str,
    body: JoinRestaurantRequest,
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthResponse:
    session_token, user = await invitations.redeem_invite(
        db,
        issuer,
        restaurant_id,
        token,
        email=body.email,
        password=body.password,
        phone=body.phone,
    )
    return AuthResponse(token=session_token, user=UserResponse.model_validate(user))


@app.delete(
    "/restaurants/{restaurant_id}/managers/{manager_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
    tags=["Managers"],
)
async def remove_manager(
    restaurant_id: str,
    manager_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await restaurants.remove_manager(db, user_id, restaurant_id, manager_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.put(
    "/restaurants/{restaurant_id}/managers/{manager_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
    tags=["Managers"],
)
async def update_manager_permissions(
    restaurant_id: str,
    manager_user_id: str,
    body: UpdateManagerPermissionsRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await restaurants.update_manager_permissions(
        db, user_id, restaurant_id, manager_user_id, body.can_manage_menu
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# TABLE ENDPOINTS
# =============================================================================

@app.post(
    "/restaurants/{restaurant_id}/tables",
    response_model=TableResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def create_table(
    restaurant_id: str,
    body: TableCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TableResponse:
    table = await tables.create_table(db, user_id, restaurant_id, body.name)
    return TableResponse.model_validate(table)


@app.get(
    "/restaurants/{restaurant_id}/tables",
    response_model=list[TableResponse],
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def list_tables(
    restaurant_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[TableResponse]:
    return [
        TableResponse.model_validate(t)
        for t in await tables.list_tables(db, user_id, restaurant_id)
    ]


@app.put(
    "/restaurants/{restaurant_id}/tables/{table_id}",
    response_model=TableResponse,
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def update_table(
    restaurant_id: str,
    table_id: str,
    body: TableUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TableResponse:
    table = await tables.rename_table(db, user_id, restaurant_id, table_id, body.name)
    return TableResponse.model_validate(table)


@app.delete(
    "/restaurants/{restaurant_id}/tables/{table_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def delete_table(
    restaurant_id: str,
    table_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await tables.delete_table(db, user_id, restaurant_id, table_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post(
    "/restaurants/{restaurant_id}/tables/{table_id}/refresh-code",
    response_model=TableResponse,
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def refresh_table_code(
    restaurant_id: str,
    table_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TableResponse:
    table = await tables.refresh_table_code(db, user_id, restaurant_id, table_id)
    return TableResponse.model_validate(table)


@app.get(
    "/restaurants/{restaurant_id}/tables/{table_id}/qr-url",
    response_model=QrUrlResponse,
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def table_qr_url(
    restaurant_id: str,
    table_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> QrUrlResponse:
    return QrUrlResponse(**await tables.get_qr_url(db, user_id, restaurant_id, table_id))


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.post(
    "/restaurants/{restaurant_id}/menu/sections",
    response_model=MenuSectionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def create_menu_section(
    restaurant_id: str,
    body: MenuSectionCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MenuSectionResponse:
    section = await menu.create_section(db, user_id, restaurant_id, body.name, body.display_order)
    # A new section has no items; avoid touching the unloaded relationship
    return MenuSectionResponse(
        id=section.id,
        restaurant_id=section.restaurant_id,
        name=section.name,
        display_order=section.display_order,
        items=[],
    )


@app.get(
    "/restaurants/{restaurant_id}/menu",
    response_model=list[MenuSectionResponse],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def get_menu(
    restaurant_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[MenuSectionResponse]:
    return [MenuSectionResponse(**s) for s in await menu.get_menu(db, user_id, restaurant_id)]


@app.post(
    "/restaurants/{restaurant_id}/menu/sections/{section_id}/items",
    response_model=MenuItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def create_menu_item(
    restaurant_id: str,
    section_id: str,
    body: MenuItemCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await menu.create_item(
        db,
        user_id,
        restaurant_id,
        section_id,
        name=body.name,
        price=body.price,
        description=body.description,
        display_order=body.display_order,
    )
    return MenuItemResponse.model_validate(item)


@app.put(
    "/restaurants/{restaurant_id}/menu/items/{item_id}",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def update_menu_item(
    restaurant_id: str,
    item_id: str,
    body: MenuItemUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await menu.update_item(
        db, user_id, restaurant_id, item_id, body.model_dump(exclude_unset=True)
    )
    return MenuItemResponse.model_validate(item)


@app.delete(
    "/restaurants/{restaurant_id}/menu/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def delete_menu_item(
    restaurant_id: str,
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await menu.delete_item(db, user_id, restaurant_id, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.put(
    "/restaurants/{restaurant_id}/menu/reorder",
    response_model=list[MenuItemResponse],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
    summary="Set display order of several menu items at once",
)
async def reorder_menu_items(
    restaurant_id: str,
    body: ReorderItemsRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    items = await menu.reorder_items(
        db, user_id, restaurant_id, [o.model_dump() for o in body.item_orders]
    )
    return [MenuItemResponse.model_validate(item) for item in items]


@app.get(
    "/menu/{restaurant_id}/{table_code}",
    response_model=PublicMenuResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
    summary="Public menu for a table (no authentication)",
)
async def public_menu(
    restaurant_id: str,
    table_code: str,
    db: AsyncSession = Depends(get_db),
) -> PublicMenuResponse:
    return PublicMenuResponse(**await menu.get_public_menu(db, restaurant_id, table_code))


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Place an order from a table (public)",
    dependencies=[Depends(rate_limit)],
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """
    Place an order for the table identified by ``table_code``.

    Prices come from the menu at this moment; the client never sends them.
    """
    result = await orders.place_order(
        db,
        table_code=order_data.table_code,
        items=[item.model_dump() for item in order_data.items],
        customer_name=order_data.customer_name,
    )
    return OrderCreateResponse(**result)


@app.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get a specific order by ID."""
    return OrderResponse(**await orders.get_order(db, order_id))


@app.get(
    "/restaurants/{restaurant_id}/orders",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def list_restaurant_orders(
    restaurant_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    views = await orders.list_restaurant_orders(db, user_id, restaurant_id)
    return [OrderResponse(**v) for v in views]


@app.get(
    "/restaurants/{restaurant_id}/orders/today",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def list_today_orders(
    restaurant_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    views = await orders.list_today_orders(db, user_id, restaurant_id)
    return [OrderResponse(**v) for v in views]


@app.get(
    "/restaurants/{restaurant_id}/tables/{table_id}/orders",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def list_table_orders(
    restaurant_id: str,
    table_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    views = await orders.list_table_orders(db, user_id, restaurant_id, table_id)
    return [OrderResponse(**v) for v in views]


@app.put(
    "/restaurants/{restaurant_id}/orders/{order_id}/status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def update_order_status(
    restaurant_id: str,
    order_id: str,
    body: OrderStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    view = await orders.update_order_status(
        db, user_id, restaurant_id, order_id, OrderStatus(body.status.value)
    )
    return OrderResponse(**view)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error_body(error: str, detail: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": error}
    if detail is not None:
        body["detail"] = detail
    return body


@app.exception_handler(LetsOrderError)
async def domain_exception_handler(request: Request, exc: LetsOrderError) -> JSONResponse:
    """Render service errors with their own status code and public message."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema violations are client errors: 400, not FastAPI's default 422."""
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Invalid request", "; ".join(errors)),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error"),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "Internal Server Error",
            str(exc) if settings.debug else "An unexpected error occurred",
        ),
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "letsorder.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
