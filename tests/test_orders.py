"""Tests for order creation and the forward-only status workflow."""

import random
import string

import pytest

from smartmenu.models import OrderStatus
from smartmenu.services import orders as order_service
from smartmenu.services.cart import Cart
from smartmenu.services.catalog import get_item


def _cart():
    return Cart().add_item(get_item("h1"), 2).add_item(get_item("n1"))


def test_order_id_format():
    order_id = order_service.generate_order_id(random.Random(1))
    assert len(order_id) >= 12
    assert set(order_id) <= set(string.digits + string.ascii_lowercase)
    assert order_service.generate_order_id(random.Random(1))[-4:] == order_id[-4:]


def test_status_chain():
    assert OrderStatus.NEW.next == OrderStatus.COOKING
    assert OrderStatus.COOKING.next == OrderStatus.SERVED
    assert OrderStatus.SERVED.next is None


def test_create_order(run_db):
    async def scenario(db):
        order = await order_service.create_order(db, " 7 ", _cart(), comment="  без лука ")
        return order, await order_service.get_order(db, order.id)

    order, loaded = run_db(scenario)
    assert order.table == "7"
    assert order.comment == "без лука"
    assert order.status == OrderStatus.NEW
    assert order.total == 7000 * 2 + 1200
    assert loaded.lines == [
        {"id": "h1", "name": "Классический кальян", "price": 7000, "quantity": 2},
        {"id": "n1", "name": "Лимонад домашний", "price": 1200, "quantity": 1},
    ]


def test_create_order_requires_table_and_items(run_db):
    async def blank_table(db):
        await order_service.create_order(db, "   ", _cart())

    async def empty_cart(db):
        await order_service.create_order(db, "3", Cart())

    with pytest.raises(order_service.EmptyOrderError):
        run_db(blank_table)
    with pytest.raises(order_service.EmptyOrderError):
        run_db(empty_cart)


def test_advance_through_workflow(run_db):
    async def scenario(db):
        order = await order_service.create_order(db, "1", _cart())
        seen = []
        for _ in range(2):
            order = await order_service.advance_status(db, order.id)
            seen.append(order.status)
        with pytest.raises(order_service.InvalidStatusTransition) as exc:
            await order_service.advance_status(db, order.id)
        return seen, exc.value

    seen, error = run_db(scenario)
    assert seen == [OrderStatus.COOKING, OrderStatus.SERVED]
    assert error.current == OrderStatus.SERVED
    assert error.requested is None


def test_update_status_forward_only(run_db):
    async def scenario(db):
        order = await order_service.create_order(db, "2", _cart())
        with pytest.raises(order_service.InvalidStatusTransition):
            await order_service.update_status(db, order.id, OrderStatus.SERVED)
        # update_status returns the session's single instance for the row
        same = (await order_service.update_status(db, order.id, OrderStatus.NEW)).status
        cooking = (await order_service.update_status(db, order.id, OrderStatus.COOKING)).status
        with pytest.raises(order_service.InvalidStatusTransition):
            await order_service.update_status(db, order.id, OrderStatus.NEW)
        return same, cooking

    same, cooking = run_db(scenario)
    assert same == OrderStatus.NEW
    assert cooking == OrderStatus.COOKING


def test_unknown_order(run_db):
    async def scenario(db):
        await order_service.get_order(db, "nope")

    with pytest.raises(order_service.OrderNotFound):
        run_db(scenario)


def test_list_orders_filters_by_status(run_db):
    async def scenario(db):
        first = await order_service.create_order(db, "1", _cart())
        await order_service.create_order(db, "2", _cart())
        await order_service.advance_status(db, first.id)
        everything = await order_service.list_orders(db)
        cooking = await order_service.list_orders(db, OrderStatus.COOKING)
        return first.id, everything, cooking

    first_id, everything, cooking = run_db(scenario)
    assert len(everything) == 2
    assert [order.id for order in cooking] == [first_id]


def test_order_to_export(run_db):
    async def scenario(db):
        return await order_service.create_order(db, "9", _cart(), comment="счёт сразу")

    data = order_service.order_to_export(run_db(scenario))
    assert data["table"] == "9"
    assert data["total"] == 15200
    assert data["order_status"] == "new"
    assert data["comment"] == "счёт сразу"
    assert data["created_at"]
