"""
SQLAlchemy Database Models

Table orders placed from the cart and tracked on the kitchen board.
"""

import enum
import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, Text, Enum

from smartmenu.database import Base


class OrderStatus(str, enum.Enum):
    """Kitchen workflow. Moves forward one step at a time, never back."""
    NEW = "new"
    COOKING = "cooking"
    SERVED = "served"

    @property
    def next(self) -> Optional["OrderStatus"]:
        return _NEXT_STATUS[self]


_NEXT_STATUS = {
    OrderStatus.NEW: OrderStatus.COOKING,
    OrderStatus.COOKING: OrderStatus.SERVED,
    OrderStatus.SERVED: None,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    """
    One table order.

    ``id`` is generated by the application, ``items`` holds the cart lines
    as a JSON string (id, name, price, quantity).
    """
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True)
    table = Column(String(50), nullable=False, index=True)
    items = Column(Text, nullable=False)
    total = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.NEW,
        nullable=False,
        index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    @property
    def lines(self) -> list[dict]:
        return json.loads(self.items)

    def __repr__(self):
        return f"<Order #{self.id} - table {self.table} - {self.total} - {self.status.value}>"
