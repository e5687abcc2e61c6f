"""
Replacement Engine

Suggests same-category substitutes for an item in a generated bundle,
closest price first.
"""

import logging
from typing import Iterable

from smartmenu.services.catalog import CATALOG, MenuItem, Tag, filter_by_tags, get_item
from smartmenu.services.ai.set_generator import Bundle

logger = logging.getLogger(__name__)

MAX_REPLACEMENTS = 6


class InvalidReplacement(ValueError):
    """The requested swap is not one the replacement engine would offer."""


def get_replacements(
    current: MenuItem,
    exclude: Iterable[Tag] = (),
    *,
    catalog: Iterable[MenuItem] = CATALOG,
    limit: int = MAX_REPLACEMENTS,
) -> list[MenuItem]:
    """
    Same-category alternatives to ``current``.

    Uses the same tag filter as the set generator. Sorting is stable, so
    equal price distances keep catalog order.
    """
    candidates = [
        item for item in filter_by_tags(catalog, exclude)
        if item.id != current.id and item.category == current.category
    ]
    candidates.sort(key=lambda item: abs(item.price - current.price))
    return candidates[:limit]


def replace_in_bundle(
    bundle: Bundle,
    old_id: str,
    new_id: str,
    exclude: Iterable[Tag] = (),
) -> Bundle:
    """
    Swap ``old_id`` for ``new_id`` inside ``bundle`` and return it.

    Raises:
        UnknownMenuItem: either id is not in the catalog
        InvalidReplacement: ``old_id`` is not in the bundle, ``new_id`` is
            already in it, or ``new_id`` is not among the offered alternatives
    """
    exclude = list(exclude)
    old_item = get_item(old_id)
    new_item = get_item(new_id)

    if old_id not in bundle.item_ids:
        raise InvalidReplacement(f"Item {old_id} is not part of '{bundle.name}'")

    if new_id in bundle.item_ids:
        raise InvalidReplacement(f"Item {new_id} is already part of '{bundle.name}'")

    allowed = {item.id for item in get_replacements(old_item, exclude)}
    if new_id not in allowed:
        raise InvalidReplacement(f"Item {new_id} cannot replace {old_id}")

    bundle.replace(old_id, new_item)
    logger.info(f"Replaced {old_id} -> {new_id} in '{bundle.name}', total={bundle.total}")
    return bundle
