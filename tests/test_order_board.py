"""Tests for board versioning and the polling watcher."""

import asyncio
from types import SimpleNamespace

from smartmenu.models import OrderStatus
from smartmenu.services.order_board import OrderBoardWatcher, board_version


def _order(order_id, status=OrderStatus.NEW):
    return SimpleNamespace(id=order_id, status=status)


def test_version_is_stable():
    orders = [_order("a"), _order("b")]
    assert board_version(orders) == board_version([_order("a"), _order("b")])
    assert len(board_version(orders)) == 16


def test_version_changes_with_status_and_membership():
    base = board_version([_order("a"), _order("b")])
    assert board_version([_order("a", OrderStatus.COOKING), _order("b")]) != base
    assert board_version([_order("a")]) != base
    assert board_version([_order("b"), _order("a")]) != base


def test_poll_once_notifies_only_on_change():
    board = [_order("a")]
    changes = []

    async def fetch():
        return list(board)

    async def listener(version, orders):
        changes.append((version, [order.id for order in orders]))

    async def scenario():
        watcher = OrderBoardWatcher(fetch)
        watcher.subscribe(listener)
        results = [await watcher.poll_once(), await watcher.poll_once()]
        board[0] = _order("a", OrderStatus.COOKING)
        results.append(await watcher.poll_once())
        board.append(_order("b"))
        results.append(await watcher.poll_once())
        return watcher, results

    watcher, results = asyncio.run(scenario())
    assert results == [True, False, True, True]
    assert [ids for _, ids in changes] == [["a"], ["a"], ["a", "b"]]
    assert watcher.version == changes[-1][0]


def test_run_stops_on_event():
    polls = []

    async def fetch():
        polls.append(len(polls))
        return [_order(str(len(polls)))]

    async def scenario():
        stop = asyncio.Event()
        watcher = OrderBoardWatcher(fetch)

        async def listener(version, orders):
            if len(polls) >= 3:
                stop.set()

        watcher.subscribe(listener)
        await asyncio.wait_for(watcher.run(interval=0.01, stop_event=stop), timeout=5)

    asyncio.run(scenario())
    assert len(polls) == 3
