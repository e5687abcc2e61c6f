"""
FastAPI Application Entry Point

SmartMenu Ordering API - backend of the table-side menu.
Uses the mock voice relay in development and ElevenLabs otherwise.

Endpoints:
    - GET /api/menu: Catalog with category/tag filters
    - POST /api/ai/sets: Three budget-fitting sets from a free-text request
    - POST /api/ai/replacements, /api/ai/replace: Swap items inside a set
    - POST /api/ai/ui-action: Extract a menu picker from agent text
    - POST /api/cart/quote: Price a cart
    - POST /api/orders, GET /api/orders: Table orders
    - GET /api/orders/board: Kitchen board polling
    - PATCH /api/orders/{id}/status, POST /api/orders/{id}/advance: Workflow
    - GET /api/voice/*: Voice agent credentials and grounding text
    - GET /health: System health check
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Any, List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from kombu.exceptions import OperationalError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import redis

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from smartmenu.core.config import get_settings, setup_logging
from smartmenu.database import get_db, init_db, dispose_db
from smartmenu.models import Order, OrderStatus
from smartmenu.schemas import (
    BundleIn,
    BundleResponse,
    CartLineIn,
    CartQuoteRequest,
    CartQuoteResponse,
    ErrorResponse,
    HealthResponse,
    IntentResponse,
    MenuItemResponse,
    MenuResponse,
    OrderBoardResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    ReplaceRequest,
    ReplacementsRequest,
    ReplacementsResponse,
    SetsRequest,
    SetsResponse,
    StatusUpdateRequest,
    UIActionRequest,
    UIActionResponse,
    VoiceContextResponse,
    VoiceCredentialsResponse,
)
from smartmenu.services import orders as order_service
from smartmenu.services.ai import (
    Bundle,
    InvalidReplacement,
    extract_ui_action,
    generate_sets,
    get_replacements,
    parse_user_message,
    replace_in_bundle,
    to_menu_picker,
)
from smartmenu.services.cart import Cart
from smartmenu.services.catalog import (
    CATALOG,
    Category,
    Tag,
    UnknownMenuItem,
    filter_by_tags,
    format_price,
    get_item,
    items_in_category,
)
from smartmenu.services.order_board import board_version
from smartmenu.services.voice import AgentMode, VoiceServiceError, get_voice_service, grounding_context
from smartmenu.tasks import export_order_to_excel

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    voice_service = get_voice_service()
    logger.info(f"Voice Service: {voice_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await dispose_db()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Table-side ordering backend: menu, AI set builder, cart, "
        "kitchen order board and voice agent credentials."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def unknown_item(exc: UnknownMenuItem) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Menu item '{exc.args[0]}' not found")


def build_cart(lines: List[CartLineIn]) -> Cart:
    """Resolve request lines against the catalog; unknown ids raise 404."""
    cart = Cart()
    for line in lines:
        try:
            cart = cart.add_item(get_item(line.id), line.quantity)
        except UnknownMenuItem as e:
            raise unknown_item(e)
    return cart


def build_bundle(data: BundleIn) -> Bundle:
    try:
        return Bundle(
            name=data.name,
            description=data.description,
            style=data.style,
            items=[get_item(item_id) for item_id in data.item_ids],
            upsell=get_item(data.upsell_id) if data.upsell_id else None,
        )
    except UnknownMenuItem as e:
        raise unknown_item(e)


def queue_order_export(order: Order) -> None:
    """Hand the order to the Celery export; a broker outage does not fail the request."""
    try:
        export_order_to_excel.delay(order_service.order_to_export(order))
    except OperationalError as e:
        logger.warning(f"Excel export for order #{order.id} not queued: {e}")


def sets_reply(people: int, budget: int) -> str:
    return (
        f"Отлично! Для {people} человек с бюджетом {format_price(budget)} подготовил 3 варианта. "
        "Выберите подходящий или замените позиции."
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
        "menu": "/api/menu",
        "board": "/api/orders/board",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except redis.RedisError as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    voice_service = get_voice_service()
    voice_status = "healthy" if await voice_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, voice_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        voice_service=voice_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu",
    response_model=MenuResponse,
    tags=["Menu"],
    summary="List Menu",
)
async def list_menu(
    category: Optional[Category] = Query(None),
    tag: Optional[List[Tag]] = Query(None),
) -> MenuResponse:
    """Catalog in menu order; ``tag`` may repeat and every tag must match."""
    items = items_in_category(category) if category else list(CATALOG)
    items = filter_by_tags(items, tag or [])
    return MenuResponse(
        total=len(items),
        items=[MenuItemResponse.from_item(item) for item in items],
    )


@app.get(
    "/api/menu/{item_id}",
    response_model=MenuItemResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def get_menu_item(item_id: str) -> MenuItemResponse:
    try:
        return MenuItemResponse.from_item(get_item(item_id))
    except UnknownMenuItem as e:
        raise unknown_item(e)


# =============================================================================
# AI SET BUILDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/ai/sets",
    response_model=SetsResponse,
    tags=["AI"],
    summary="Generate Sets",
)
async def create_sets(request: SetsRequest) -> SetsResponse:
    """
    Parse a free-text request and build the balanced, hearty and light sets.

    Never fails on odd input: unparsed fields fall back to defaults and an
    unaffordable budget simply yields sparse sets.
    """
    intent = parse_user_message(request.message)
    bundles = generate_sets(intent)
    return SetsResponse(
        intent=IntentResponse.from_intent(intent),
        bundles=[BundleResponse.from_bundle(bundle) for bundle in bundles],
        reply=sets_reply(intent.people, intent.budget),
    )


@app.post(
    "/api/ai/replacements",
    response_model=ReplacementsResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["AI"],
)
async def list_replacements(request: ReplacementsRequest) -> ReplacementsResponse:
    """Same-category alternatives, closest price first."""
    try:
        current = get_item(request.item_id)
    except UnknownMenuItem as e:
        raise unknown_item(e)

    candidates = get_replacements(current, request.exclude)
    return ReplacementsResponse(
        item_id=current.id,
        candidates=[MenuItemResponse.from_item(item) for item in candidates],
    )


@app.post(
    "/api/ai/replace",
    response_model=BundleResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["AI"],
)
async def replace_item(request: ReplaceRequest) -> BundleResponse:
    """Swap one item in a set and return the set with its new total."""
    bundle = build_bundle(request.bundle)
    try:
        replace_in_bundle(bundle, request.old_id, request.new_id, request.exclude)
    except UnknownMenuItem as e:
        raise unknown_item(e)
    except InvalidReplacement as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BundleResponse.from_bundle(bundle)


@app.post(
    "/api/ai/ui-action",
    response_model=UIActionResponse,
    tags=["AI"],
)
async def parse_ui_action(request: UIActionRequest) -> UIActionResponse:
    """Pull the ``<UI_ACTION>`` block out of an agent reply, if any."""
    action = extract_ui_action(request.text)
    return UIActionResponse(action=action, picker=to_menu_picker(action))


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.post(
    "/api/cart/quote",
    response_model=CartQuoteResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def quote_cart(request: CartQuoteRequest) -> CartQuoteResponse:
    return CartQuoteResponse.from_cart(build_cart(request.items))


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Place Table Order",
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """Create an order from cart lines; it starts in status ``new``."""
    cart = build_cart(order_data.items)
    try:
        order = await order_service.create_order(
            db,
            table=order_data.table,
            cart=cart,
            comment=order_data.comment or "",
        )
    except order_service.EmptyOrderError as e:
        raise HTTPException(status_code=400, detail=str(e))

    queue_order_export(order)

    return OrderCreateResponse(
        success=True,
        message="Заказ отправлен на кухню",
        order=OrderResponse.model_validate(order),
    )


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """All orders, newest first."""
    orders = await order_service.list_orders(db, status)
    return OrderListResponse(
        total=len(orders),
        orders=[OrderResponse.model_validate(order) for order in orders],
    )


@app.get(
    "/api/orders/board",
    response_model=OrderBoardResponse,
    tags=["Orders"],
    summary="Kitchen Board Polling",
)
async def order_board(
    version: Optional[str] = Query(None, description="Version the client already holds"),
    db: AsyncSession = Depends(get_db),
) -> OrderBoardResponse:
    """
    Poll the kitchen board.

    Clients send back the last ``version`` they saw; when nothing changed
    the answer carries no orders.
    """
    orders = await order_service.list_orders(db)
    current = board_version(orders)
    if version == current:
        return OrderBoardResponse(version=current, changed=False)
    return OrderBoardResponse(
        version=current,
        changed=True,
        orders=[OrderResponse.model_validate(order) for order in orders],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get a specific order by ID."""
    try:
        order = await order_service.get_order(db, order_id)
    except order_service.OrderNotFound:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    return OrderResponse.model_validate(order)


async def _change_status(db: AsyncSession, order_id: str, status: Optional[OrderStatus]) -> OrderResponse:
    try:
        if status is None:
            order = await order_service.advance_status(db, order_id)
        else:
            order = await order_service.update_status(db, order_id, status)
    except order_service.OrderNotFound:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    except order_service.InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    queue_order_export(order)
    return OrderResponse.model_validate(order)


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Set the status; only the next workflow step is accepted."""
    return await _change_status(db, order_id, request.status)


@app.post(
    "/api/orders/{order_id}/advance",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def advance_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    return await _change_status(db, order_id, None)


# =============================================================================
# VOICE ENDPOINTS
# =============================================================================

@app.get(
    "/api/voice/signed-url",
    response_model=VoiceCredentialsResponse,
    responses={500: {"model": ErrorResponse}},
    tags=["Voice"],
)
async def voice_signed_url(
    mode: AgentMode = Query(AgentMode.PICKER),
) -> Any:
    """Signed WebSocket URL and conversation token for the chosen agent."""
    try:
        creds = await get_voice_service().get_signed_url(mode)
    except VoiceServiceError as e:
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    return VoiceCredentialsResponse.from_credentials(creds)


@app.get(
    "/api/voice/token",
    response_model=VoiceCredentialsResponse,
    responses={500: {"model": ErrorResponse}},
    tags=["Voice"],
)
async def voice_token(
    mode: AgentMode = Query(AgentMode.PICKER),
) -> Any:
    try:
        creds = await get_voice_service().get_conversation_token(mode)
    except VoiceServiceError as e:
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    return VoiceCredentialsResponse.from_credentials(creds)


@app.get(
    "/api/voice/context",
    response_model=VoiceContextResponse,
    tags=["Voice"],
)
async def voice_context(
    mode: AgentMode = Query(AgentMode.PICKER),
) -> VoiceContextResponse:
    """Grounding text the client sends to the agent after connecting."""
    return VoiceContextResponse(mode=mode, context=grounding_context(mode))


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "smartmenu.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
