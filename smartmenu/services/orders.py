"""
Order Service

Creates table orders from a cart and moves them along the kitchen workflow
(new -> cooking -> served). Transitions only go forward, one step at a time.

Usage:
    order = await create_order(db, table="7", cart=cart, comment="без лука")
    await advance_status(db, order.id)
"""

import json
import logging
import random
import string
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smartmenu.models import Order, OrderStatus
from smartmenu.services.cart import Cart

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class OrderError(Exception):
    """Base class for order workflow errors."""


class EmptyOrderError(OrderError):
    """Order has no table or no items."""


class OrderNotFound(OrderError):
    """No order with the given id."""


class InvalidStatusTransition(OrderError):
    """Requested status is not the next step of the workflow."""

    def __init__(self, order_id: str, current: OrderStatus, requested: Optional[OrderStatus] = None):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        if requested is None:
            message = f"Order {order_id} is already '{current.value}' and cannot advance"
        else:
            message = f"Order {order_id} cannot move from '{current.value}' to '{requested.value}'"
        super().__init__(message)


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_order_id(rng: Optional[random.Random] = None) -> str:
    """Millisecond timestamp in base 36 followed by four random base-36 characters."""
    rng = rng or random.Random()
    suffix = "".join(rng.choice(_BASE36) for _ in range(4))
    return _to_base36(int(time.time() * 1000)) + suffix


def serialize_lines(cart: Cart) -> str:
    return json.dumps(
        [
            {
                "id": line.item.id,
                "name": line.item.name,
                "price": line.item.price,
                "quantity": line.quantity,
            }
            for line in cart.lines
        ],
        ensure_ascii=False,
    )


def order_to_export(order: Order) -> dict:
    """Flat dict for the Excel export task."""
    return {
        "order_id": order.id,
        "table": order.table,
        "items": order.items,
        "total": order.total,
        "comment": order.comment,
        "order_status": order.status.value,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def check_transition(order: Order, requested: OrderStatus) -> bool:
    """
    Validate a status change.

    Returns False when ``requested`` is the current status (nothing to do).

    Raises:
        InvalidStatusTransition: anything but the single next step
    """
    if order.status == requested:
        return False
    if order.status.next != requested:
        raise InvalidStatusTransition(order.id, order.status, requested)
    return True


# =============================================================================
# PERSISTENCE
# =============================================================================

async def create_order(
    db: AsyncSession,
    table: str,
    cart: Cart,
    comment: str = "",
) -> Order:
    table = (table or "").strip()
    if not table:
        raise EmptyOrderError("Table number is required")
    if cart.is_empty:
        raise EmptyOrderError("Cart is empty")

    order = Order(
        id=generate_order_id(),
        table=table,
        items=serialize_lines(cart),
        total=cart.total,
        comment=(comment or "").strip(),
        status=OrderStatus.NEW,
    )
    db.add(order)
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order #{order.id} created for table {order.table}: {order.total} ₸, {cart.count} items")
    return order


async def get_order(db: AsyncSession, order_id: str) -> Order:
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_id)
    return order


async def list_orders(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
) -> list[Order]:
    """All orders, newest first."""
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if status is not None:
        query = query.where(Order.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_status(
    db: AsyncSession,
    order_id: str,
    status: OrderStatus,
) -> Order:
    order = await get_order(db, order_id)
    if not check_transition(order, status):
        logger.debug(f"Order #{order_id} already '{status.value}'")
        return order

    previous = order.status
    order.status = status
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order #{order_id}: {previous.value} -> {status.value}")
    return order


async def advance_status(db: AsyncSession, order_id: str) -> Order:
    """Move an order to its next status; a served order cannot advance."""
    order = await get_order(db, order_id)
    following = order.status.next
    if following is None:
        raise InvalidStatusTransition(order.id, order.status)
    return await update_status(db, order_id, following)
