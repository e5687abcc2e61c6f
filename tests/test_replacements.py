"""Tests for the replacement engine."""

import pytest

from smartmenu.services.ai import Bundle, InvalidReplacement, Style, get_replacements, replace_in_bundle
from smartmenu.services.catalog import Category, Tag, UnknownMenuItem, get_item


def test_same_category_sorted_by_price_distance():
    candidates = get_replacements(get_item("d1"))
    # Equal distances keep menu order (d2 before d3).
    assert [item.id for item in candidates] == ["d2", "d3", "d5", "d6", "d4"]


def test_at_most_six_candidates():
    candidates = get_replacements(get_item("n1"))
    assert len(candidates) == 6
    assert all(item.category == Category.DRINKS for item in candidates)
    assert "n1" not in [item.id for item in candidates]


def test_exclude_tags_restrict_candidates():
    candidates = get_replacements(get_item("g1"), [Tag.HALAL])
    assert candidates
    for item in candidates:
        assert item.category == Category.HOT
        assert Tag.HALAL in item.tags


def test_no_candidates_when_category_filtered_out():
    assert get_replacements(get_item("h1"), [Tag.VEGAN]) == []


def _bundle(*ids):
    return Bundle(
        name="Набор A — Сбалансированный",
        description="",
        style=Style.BALANCED,
        items=[get_item(item_id) for item_id in ids],
    )


def test_replace_in_bundle_recomputes_total():
    bundle = _bundle("g1", "n1")
    replace_in_bundle(bundle, "g1", "g2")
    assert bundle.item_ids == ["g2", "n1"]
    assert bundle.total == 7500 + 1200


def test_replace_rejects_other_category():
    with pytest.raises(InvalidReplacement):
        replace_in_bundle(_bundle("g1", "n1"), "g1", "d1")


def test_replace_rejects_item_not_in_bundle():
    with pytest.raises(InvalidReplacement):
        replace_in_bundle(_bundle("g1", "n1"), "g3", "g2")


def test_replace_respects_exclude_tags():
    with pytest.raises(InvalidReplacement):
        replace_in_bundle(_bundle("g1"), "g1", "g2", [Tag.HALAL])


def test_replace_unknown_id():
    with pytest.raises(UnknownMenuItem):
        replace_in_bundle(_bundle("g1"), "g1", "zz")


def test_replace_rejects_item_already_in_bundle():
    bundle = _bundle("d1", "d2")
    with pytest.raises(InvalidReplacement, match="already part"):
        replace_in_bundle(bundle, "d1", "d2")
    assert bundle.item_ids == ["d1", "d2"]


def test_replace_limited_to_offered_candidates():
    offered = [item.id for item in get_replacements(get_item("n1"))]
    assert "n8" not in offered
    with pytest.raises(InvalidReplacement, match="cannot replace"):
        replace_in_bundle(_bundle("n1"), "n1", "n8")
    replace_in_bundle(_bundle("n1"), "n1", offered[-1])
