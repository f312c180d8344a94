"""
Pydantic Schemas for Request/Response Validation

Request bodies are validated here; anything that depends on stored state
(menu membership, availability, invite validity) is checked by the services.
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatusEnum(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ManagerRoleEnum(str, Enum):
    SUPER_ADMIN = "super_admin"
    MANAGER = "manager"


# =============================================================================
# AUTH SCHEMAS
# =============================================================================

class RegisterRequest(BaseModel):
    email: EmailStr = Field(..., examples=["owner@example.com"])
    phone: Optional[str] = Field(None, max_length=32, examples=["+1-555-123-4567"])
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    phone: Optional[str]
    email_verified: bool
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


# =============================================================================
# RESTAURANT SCHEMAS
# =============================================================================

class RestaurantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, examples=["Trattoria Roma"])
    address: Optional[str] = Field(None, max_length=500)
    establishment_year: Optional[int] = Field(None, ge=1000, le=9999)
    google_maps_link: Optional[str] = Field(None, max_length=1000)


class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = Field(None, max_length=500)
    establishment_year: Optional[int] = Field(None, ge=1000, le=9999)
    google_maps_link: Optional[str] = Field(None, max_length=1000)


class RestaurantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: Optional[str]
    establishment_year: Optional[int]
    google_maps_link: Optional[str]
    created_at: datetime


class MyRestaurantResponse(RestaurantResponse):
    """A restaurant as seen by one of its managers."""
    role: ManagerRoleEnum
    can_manage_menu: bool


class ManagerInfo(BaseModel):
    user_id: str
    email: str
    phone: Optional[str]
    role: ManagerRoleEnum
    can_manage_menu: bool
    created_at: datetime


class RestaurantWithManagers(BaseModel):
    restaurant: RestaurantResponse
    managers: List[ManagerInfo]


# =============================================================================
# MANAGER INVITE SCHEMAS
# =============================================================================

class InviteManagerRequest(BaseModel):
    email: EmailStr = Field(..., examples=["manager@example.com"])
    can_manage_menu: bool = False


class InviteResponse(BaseModel):
    invite_token: str
    expires_at: datetime


class JoinRestaurantRequest(BaseModel):
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=32)
    password: str = Field(..., min_length=8, max_length=128)


class UpdateManagerPermissionsRequest(BaseModel):
    can_manage_menu: bool


# =============================================================================
# TABLE SCHEMAS
# =============================================================================

class TableCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Table 4"])


class TableUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class TableResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    restaurant_id: str
    name: str
    unique_code: str
    created_at: datetime


class QrUrlResponse(BaseModel):
    table_id: str
    table_name: str
    unique_code: str
    qr_url: str


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuSectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, examples=["Starters"])
    display_order: Optional[int] = Field(None, ge=0)


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, examples=["Bruschetta"])
    description: Optional[str] = Field(None, max_length=2000)
    price: float = Field(..., ge=0, examples=[7.5])
    display_order: Optional[int] = Field(None, ge=0)


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    available: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class ItemOrder(BaseModel):
    item_id: str
    display_order: int = Field(..., ge=0)


class ReorderItemsRequest(BaseModel):
    item_orders: list[ItemOrder] = Field(..., max_length=500)


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    section_id: str
    name: str
    description: Optional[str]
    price: float
    available: bool
    display_order: int


class MenuSectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    restaurant_id: str
    name: str
    display_order: int
    items: List[MenuItemResponse] = []


class PublicMenuResponse(BaseModel):
    restaurant_id: str
    restaurant_name: str
    restaurant_address: Optional[str]
    table_id: str
    table_name: str
    sections: List[MenuSectionResponse]


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single requested line. Prices are never accepted from the client."""
    menu_item_id: str = Field(..., min_length=1, max_length=64)
    quantity: int = Field(..., examples=[2])
    special_requests: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Request schema for placing an order from a table."""
    table_code: str = Field(..., min_length=1, max_length=16, examples=["K7Q2M9XA"])
    items: List[OrderItemCreate] = Field(..., max_length=100)
    customer_name: Optional[str] = Field(None, max_length=100, examples=["Ana"])

    @field_validator("customer_name")
    @classmethod
    def blank_name_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class OrderCreateResponse(BaseModel):
    order_id: str
    total_amount: float
    status: OrderStatusEnum
    created_at: datetime


class OrderItemResponse(BaseModel):
    menu_item_id: str
    menu_item_name: str
    quantity: int
    price: float
    special_requests: Optional[str]


class OrderResponse(BaseModel):
    id: str
    table_id: str
    table_name: str
    restaurant_id: str
    restaurant_name: str
    items: List[OrderItemResponse]
    total_amount: float
    status: OrderStatusEnum
    customer_name: Optional[str]
    created_at: datetime


class OrderStatusUpdate(BaseModel):
    status: OrderStatusEnum


# =============================================================================
# MISC
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    rate_limiter: str
    notification_service: str
    timestamp: datetime
