"""
UI-Action Extractor

The conversational agent drives the front-end by embedding one JSON block in
its reply text:

    <UI_ACTION>
    {"action": "OPEN_MENU_PICKER", "title": "...", "variants": [...]}
    </UI_ACTION>

``extract_ui_action`` only checks that the block parses; ``to_menu_picker``
validates the fields a picker modal needs and normalises the loose shapes
agents tend to produce.
"""

import json
import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

OPEN_MENU_PICKER = "OPEN_MENU_PICKER"
DEFAULT_PICKER_TITLE = "Подобранное меню"
DEFAULT_VARIANT_NAME = "Вариант"

UI_ACTION_PATTERN = re.compile(r"<UI_ACTION>([\s\S]*?)</UI_ACTION>")


class MenuPickerItem(BaseModel):
    id: str
    name: str
    price: float = 0


class MenuPickerVariant(BaseModel):
    name: str
    items: list[MenuPickerItem] = Field(default_factory=list)
    total: float = 0


class MenuPickerPayload(BaseModel):
    title: str
    variants: list[MenuPickerVariant] = Field(default_factory=list)


def extract_ui_action(text: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Return the parsed payload of the first UI_ACTION block, or None.

    A missing block, invalid JSON and a non-object payload all mean
    "nothing to do".
    """
    if not text:
        return None
    match = UI_ACTION_PATTERN.search(text)
    if not match:
        return None
    try:
        payload = json.loads(match.group(1).strip())
    except (ValueError, RecursionError):
        logger.debug("UI_ACTION block present but not valid JSON")
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def render_ui_action(payload: dict[str, Any]) -> str:
    """Wrap ``payload`` in UI_ACTION delimiters."""
    return f"<UI_ACTION>\n{json.dumps(payload, ensure_ascii=False, indent=2)}\n</UI_ACTION>"


def _first_number(source: dict, *keys: str) -> Optional[float]:
    for key in keys:
        value = source.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return None


def _normalise_item(raw: Any) -> Optional[MenuPickerItem]:
    if not isinstance(raw, dict):
        return None
    item_id = raw.get("id") or raw.get("name")
    name = raw.get("name") or raw.get("id")
    if not item_id:
        return None
    price = _first_number(raw, "price", "priceKZT", "totalKZT")
    return MenuPickerItem(id=str(item_id), name=str(name), price=price or 0)


def _normalise_variant(raw: Any) -> Optional[MenuPickerVariant]:
    if not isinstance(raw, dict):
        return None
    raw_items = raw.get("items") or []
    if not isinstance(raw_items, list):
        raw_items = []
    items = [item for item in map(_normalise_item, raw_items) if item is not None]
    total = _first_number(raw, "total", "totalKZT")
    if total is None:
        total = sum(item.price for item in items)
    return MenuPickerVariant(
        name=str(raw.get("name") or raw.get("key") or DEFAULT_VARIANT_NAME),
        items=items,
        total=total,
    )


def to_menu_picker(payload: Optional[dict[str, Any]]) -> Optional[MenuPickerPayload]:
    """Interpret an extracted payload as an OPEN_MENU_PICKER action, if it is one."""
    if not payload or payload.get("action") != OPEN_MENU_PICKER:
        return None
    raw_variants = payload.get("variants") or []
    if not isinstance(raw_variants, list):
        raw_variants = []
    variants = [v for v in map(_normalise_variant, raw_variants) if v is not None]
    return MenuPickerPayload(
        title=str(payload.get("title") or DEFAULT_PICKER_TITLE),
        variants=variants,
    )
