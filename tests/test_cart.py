"""Tests for the copy-on-write cart."""

from smartmenu.services.ai import Bundle, MenuPickerVariant, Style
from smartmenu.services.ai.ui_action import MenuPickerItem
from smartmenu.services.cart import Cart
from smartmenu.services.catalog import get_item


def test_add_merges_quantities():
    cart = Cart().add_item(get_item("h1")).add_item(get_item("h1"), 2).add_item(get_item("n1"))
    assert len(cart.lines) == 2
    assert cart.get("h1").quantity == 3
    assert cart.count == 4
    assert cart.total == 7000 * 3 + 1200


def test_mutations_return_new_cart():
    empty = Cart()
    cart = empty.add_item(get_item("n1"))
    assert empty.is_empty
    assert not cart.is_empty
    assert cart.clear().is_empty
    assert cart.get("n1") is not None


def test_update_quantity():
    cart = Cart().add_item(get_item("n1"))
    assert cart.update_quantity("n1", 5).total == 1200 * 5
    assert cart.update_quantity("n1", 0).is_empty
    assert cart.update_quantity("n1", -1).is_empty


def test_remove_item():
    cart = Cart().add_item(get_item("n1")).add_item(get_item("g1"))
    cart = cart.remove_item("n1")
    assert [line.item.id for line in cart.lines] == ["g1"]
    assert cart.remove_item("missing") == cart


def test_add_bundle_includes_upsell():
    bundle = Bundle(
        name="Набор C — Лёгкий",
        description="",
        style=Style.LIGHT,
        items=[get_item("sl2"), get_item("n1")],
        upsell=get_item("n8"),
    )
    cart = Cart().add_bundle(bundle)
    assert [line.item.id for line in cart.lines] == ["sl2", "n1", "n8"]
    assert cart.total == bundle.total + 500


def test_add_picker_variant_skips_unknown_ids():
    variant = MenuPickerVariant(
        name="Вариант A",
        items=[
            MenuPickerItem(id="h1", name="Классический кальян", price=7000),
            MenuPickerItem(id="ghost", name="Нет в меню", price=100),
        ],
        total=7100,
    )
    cart = Cart().add_picker_variant(variant)
    assert [line.item.id for line in cart.lines] == ["h1"]
    assert cart.total == 7000
