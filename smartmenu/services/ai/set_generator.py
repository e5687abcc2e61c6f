"""
Set Generator

Builds three candidate meal bundles (balanced, hearty, light) that fit a
budget. This is a greedy multi-pass heuristic, not an optimal solver:

    1. restrict the catalog with the tag filter
    2. required hookah, then required centre set
    3. main course quota (hot dishes and salads)
    4. appetizers (not for light)
    5. drinks in random order
    6. one dessert when more than 1500 ₸ is left (not for light)
    7. top-up with the item closest to what is left, while >10% remains
       (never a second hookah or set when one was required)
    8. an upsell suggestion when less than 10% remains

A step that finds nothing affordable is skipped. Every addition must fit in
the remaining budget, so a bundle never costs more than the budget; a tiny
budget simply produces small or empty bundles.

Items already placed in an earlier bundle of the same request are avoided
through a shared ``used_ids`` set owned by the caller.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from smartmenu.services.catalog import CATALOG, Category, MenuItem, filter_by_tags
from smartmenu.services.ai.request_parser import Intent

logger = logging.getLogger(__name__)

DESSERT_THRESHOLD = 1500
TOP_UP_FLOOR = 0.1
UPSELL_WINDOW = 0.1
UPSELL_OVERSHOOT = 0.05

MAIN_CATEGORIES = (Category.HOT, Category.SALADS)
UPSELL_CATEGORIES = (Category.DRINKS, Category.DESSERTS, Category.APPETIZERS)


class Style(str, Enum):
    BALANCED = "balanced"
    HEARTY = "hearty"
    LIGHT = "light"


BUNDLE_TITLES = [
    (Style.BALANCED, "Набор A — Сбалансированный", "Оптимальный микс закусок, горячего и напитков"),
    (Style.HEARTY, "Набор B — Сытный", "Больше горячего и закусок для плотного ужина"),
    (Style.LIGHT, "Набор C — Лёгкий", "Акцент на салаты и лёгкие блюда"),
]


@dataclass
class Bundle:
    """One generated set. ``total`` is always derived from ``items``."""
    name: str
    description: str
    style: Style
    items: list[MenuItem] = field(default_factory=list)
    upsell: Optional[MenuItem] = None

    @property
    def total(self) -> int:
        return sum(item.price for item in self.items)

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]

    def replace(self, old_id: str, new_item: MenuItem) -> bool:
        """Swap every occurrence of ``old_id`` for ``new_item`` in place."""
        replaced = False
        for index, item in enumerate(self.items):
            if item.id == old_id:
                self.items[index] = new_item
                replaced = True
        return replaced


class _Builder:
    """Mutable state for one bundle while it is being assembled."""

    def __init__(self, candidates: list[MenuItem], budget: int, used_ids: set[str]):
        self.candidates = candidates
        self.budget = budget
        self.remaining = budget
        self.used = set(used_ids)
        self.items: list[MenuItem] = []

    def available(self, categories: Iterable[Category] = (), affordable: bool = True) -> list[MenuItem]:
        wanted = tuple(categories)
        return [
            item for item in self.candidates
            if item.id not in self.used
            and (not wanted or item.category in wanted)
            and (not affordable or item.price <= self.remaining)
        ]

    def fits(self, item: MenuItem) -> bool:
        return self.remaining - item.price >= 0

    def add(self, item: MenuItem) -> None:
        self.items.append(item)
        self.used.add(item.id)
        self.remaining -= item.price

    def add_first(self, candidates: list[MenuItem], count: int) -> None:
        for item in candidates[:count]:
            if self.fits(item):
                self.add(item)


def _pick_by_style(candidates: list[MenuItem], style: Style, rng: random.Random) -> MenuItem:
    if style == Style.HEARTY:
        return max(candidates, key=lambda item: item.price)
    if style == Style.LIGHT:
        return min(candidates, key=lambda item: item.price)
    return rng.choice(candidates)


def build_bundle(
    name: str,
    description: str,
    candidates: list[MenuItem],
    intent: Intent,
    style: Style,
    used_ids: set[str],
    rng: random.Random,
) -> Bundle:
    """
    Assemble one bundle from pre-filtered ``candidates``.

    ``used_ids`` is read to avoid repeats and then extended with every item
    this bundle placed.
    """
    people = intent.people
    builder = _Builder(candidates, intent.budget, used_ids)

    if Category.HOOKAH.value in intent.must_have:
        hookahs = builder.available([Category.HOOKAH])
        if hookahs:
            builder.add(_pick_by_style(hookahs, style, rng))

    if Category.SETS.value in intent.must_have:
        sets = builder.available([Category.SETS])
        if sets:
            builder.add(_pick_by_style(sets, style, rng))

    # Main course
    if style == Style.HEARTY:
        main_count = min(people, 3)
    elif style == Style.LIGHT:
        main_count = 1
    else:
        main_count = min(people, 2)
    mains = sorted(
        builder.available(MAIN_CATEGORIES),
        key=lambda item: item.price,
        reverse=style == Style.HEARTY,
    )
    builder.add_first(mains, main_count)

    if style != Style.LIGHT:
        app_count = 2 if style == Style.HEARTY else 1
        builder.add_first(builder.available([Category.APPETIZERS]), app_count)

    drinks = builder.available([Category.DRINKS])
    rng.shuffle(drinks)
    builder.add_first(drinks, min(people, 3))

    if style != Style.LIGHT and builder.remaining > DESSERT_THRESHOLD:
        desserts = builder.available([Category.DESSERTS])
        if desserts:
            builder.add(desserts[0])

    # Top-up: closest price to what is left, re-evaluated after every pick.
    # Required categories keep exactly one item.
    required = {Category(value) for value in intent.must_have}
    while builder.remaining > intent.budget * TOP_UP_FLOOR:
        pool = [item for item in builder.available() if item.category not in required]
        if not pool:
            break
        builder.add(min(pool, key=lambda item: abs(builder.remaining - item.price)))

    upsell = None
    if 0 < builder.remaining < intent.budget * UPSELL_WINDOW:
        ceiling = builder.remaining + intent.budget * UPSELL_OVERSHOOT
        for item in builder.available(UPSELL_CATEGORIES, affordable=False):
            if item.price <= ceiling:
                upsell = item
                break

    used_ids.update(builder.used)

    return Bundle(
        name=name,
        description=description,
        style=style,
        items=builder.items,
        upsell=upsell,
    )


def generate_sets(
    intent: Intent,
    *,
    catalog: Iterable[MenuItem] = CATALOG,
    rng: Optional[random.Random] = None,
    used_ids: Optional[set[str]] = None,
) -> list[Bundle]:
    """
    Produce the balanced, hearty and light bundles for ``intent``, in that order.

    Args:
        intent: Parsed request
        catalog: Items to choose from
        rng: Source for the randomised choices; seed it for reproducible output
        used_ids: Request-scoped accumulator of placed ids; a fresh set if omitted
    """
    rng = rng or random.Random()
    used_ids = set() if used_ids is None else used_ids
    candidates = filter_by_tags(catalog, intent.exclude)

    bundles = [
        build_bundle(name, description, candidates, intent, style, used_ids, rng)
        for style, name, description in BUNDLE_TITLES
    ]

    logger.info(
        f"Generated sets for people={intent.people} budget={intent.budget}: "
        + ", ".join(f"{b.style.value}={b.total}/{len(b.items)} items" for b in bundles)
    )
    return bundles
