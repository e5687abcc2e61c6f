"""
Pydantic Schemas for Request/Response Validation

Covers the menu, the AI set builder, the cart quote, table orders with the
kitchen board, and the voice credential relay.
"""

import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from smartmenu.models import OrderStatus
from smartmenu.services.ai import Bundle, Intent, MenuPickerPayload, Style
from smartmenu.services.cart import Cart, CartLine
from smartmenu.services.catalog import Category, MenuItem, Tag, format_price
from smartmenu.services.voice import AgentMode, VoiceCredentials


# =============================================================================
# MENU
# =============================================================================

class MenuItemResponse(BaseModel):
    """One catalog entry."""
    id: str
    name: str
    description: str
    price: int
    category: Category
    tags: List[Tag]
    allergens: List[str]

    @classmethod
    def from_item(cls, item: MenuItem) -> "MenuItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=item.price,
            category=item.category,
            tags=sorted(item.tags, key=lambda tag: tag.value),
            allergens=list(item.allergens),
        )


class MenuResponse(BaseModel):
    total: int
    items: List[MenuItemResponse]


# =============================================================================
# AI SET BUILDER
# =============================================================================

class SetsRequest(BaseModel):
    """Free-text ordering request, e.g. "нас 4, бюджет 40к, без свинины"."""
    message: str = Field(..., min_length=1, max_length=1000, examples=["Нас трое, бюджет 25 тысяч, хотим кальян"])


class IntentResponse(BaseModel):
    people: int
    budget: int
    must_have: List[str]
    exclude: List[Tag]
    preferences: List[Tag]

    @classmethod
    def from_intent(cls, intent: Intent) -> "IntentResponse":
        return cls(
            people=intent.people,
            budget=intent.budget,
            must_have=list(intent.must_have),
            exclude=list(intent.exclude),
            preferences=list(intent.preferences),
        )


class BundleResponse(BaseModel):
    name: str
    description: str
    style: Style
    items: List[MenuItemResponse]
    total: int
    upsell: Optional[MenuItemResponse] = None

    @classmethod
    def from_bundle(cls, bundle: Bundle) -> "BundleResponse":
        return cls(
            name=bundle.name,
            description=bundle.description,
            style=bundle.style,
            items=[MenuItemResponse.from_item(item) for item in bundle.items],
            total=bundle.total,
            upsell=MenuItemResponse.from_item(bundle.upsell) if bundle.upsell else None,
        )


class SetsResponse(BaseModel):
    intent: IntentResponse
    bundles: List[BundleResponse]
    reply: str


class ReplacementsRequest(BaseModel):
    item_id: str = Field(..., min_length=1)
    exclude: List[Tag] = Field(default_factory=list)


class ReplacementsResponse(BaseModel):
    item_id: str
    candidates: List[MenuItemResponse]


class BundleIn(BaseModel):
    """A bundle as the client holds it: ids only, totals are recomputed."""
    name: str
    description: str = ""
    style: Style = Style.BALANCED
    item_ids: List[str] = Field(..., min_length=1)
    upsell_id: Optional[str] = None


class ReplaceRequest(BaseModel):
    bundle: BundleIn
    old_id: str
    new_id: str
    exclude: List[Tag] = Field(default_factory=list)


class UIActionRequest(BaseModel):
    text: str


class UIActionResponse(BaseModel):
    action: Optional[dict[str, Any]] = None
    picker: Optional[MenuPickerPayload] = None


# =============================================================================
# CART
# =============================================================================

class CartLineIn(BaseModel):
    id: str = Field(..., min_length=1, examples=["h1"])
    quantity: int = Field(default=1, ge=1, le=99, examples=[2])


class CartQuoteRequest(BaseModel):
    items: List[CartLineIn] = Field(default_factory=list)


class CartLineResponse(BaseModel):
    id: str
    name: str
    price: int
    quantity: int
    line_total: int

    @classmethod
    def from_line(cls, line: CartLine) -> "CartLineResponse":
        return cls(
            id=line.item.id,
            name=line.item.name,
            price=line.item.price,
            quantity=line.quantity,
            line_total=line.line_total,
        )


class CartQuoteResponse(BaseModel):
    lines: List[CartLineResponse]
    count: int
    total: int
    total_formatted: str

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartQuoteResponse":
        return cls(
            lines=[CartLineResponse.from_line(line) for line in cart.lines],
            count=cart.count,
            total=cart.total,
            total_formatted=format_price(cart.total),
        )


# =============================================================================
# ORDERS
# =============================================================================

class OrderCreate(BaseModel):
    """Request schema for placing a table order."""
    table: str = Field(..., min_length=1, max_length=50, examples=["7"])
    items: List[CartLineIn] = Field(..., min_length=1)
    comment: Optional[str] = Field(None, max_length=500, examples=["без лука"])


class OrderLine(BaseModel):
    id: str
    name: str
    price: int
    quantity: int


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: str
    table: str
    items: List[OrderLine]
    total: int
    comment: str
    status: OrderStatus
    created_at: datetime
    updated_at: Optional[datetime]

    @field_validator("items", mode="before")
    @classmethod
    def parse_items(cls, v: Any) -> Any:
        if isinstance(v, str):
            return json.loads(v)
        return v

    class Config:
        from_attributes = True


class OrderCreateResponse(BaseModel):
    success: bool
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    total: int
    orders: List[OrderResponse]


class OrderBoardResponse(BaseModel):
    """Polling answer; ``orders`` is empty when ``changed`` is False."""
    version: str
    changed: bool
    orders: List[OrderResponse] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


# =============================================================================
# VOICE
# =============================================================================

class VoiceCredentialsResponse(BaseModel):
    mode: AgentMode
    agent_id: str
    signed_url: Optional[str] = None
    token: Optional[str] = None
    provider: str

    @classmethod
    def from_credentials(cls, creds: VoiceCredentials) -> "VoiceCredentialsResponse":
        return cls(
            mode=creds.mode,
            agent_id=creds.agent_id,
            signed_url=creds.signed_url,
            token=creds.token,
            provider=creds.provider,
        )


class VoiceContextResponse(BaseModel):
    mode: AgentMode
    context: str


# =============================================================================
# COMMON
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
    redis: str
    voice_service: str
    timestamp: datetime
