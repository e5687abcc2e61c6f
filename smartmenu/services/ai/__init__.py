"""
AI Set-Builder Module

Rule-based assistant that reads a free-text request and proposes three
budget-fitting bundles.

Usage:
    from smartmenu.services.ai import parse_user_message, generate_sets

    bundles = generate_sets(parse_user_message("нас трое, бюджет 30000 ₸"))
"""

from smartmenu.services.ai.request_parser import Intent, parse_user_message
from smartmenu.services.ai.set_generator import Bundle, Style, generate_sets
from smartmenu.services.ai.replacements import (
    InvalidReplacement,
    get_replacements,
    replace_in_bundle,
)
from smartmenu.services.ai.ui_action import (
    MenuPickerPayload,
    MenuPickerVariant,
    extract_ui_action,
    render_ui_action,
    to_menu_picker,
)

__all__ = [
    # Parsing
    "Intent",
    "parse_user_message",
    # Generation
    "Bundle",
    "Style",
    "generate_sets",
    # Replacements
    "InvalidReplacement",
    "get_replacements",
    "replace_in_bundle",
    # UI actions
    "MenuPickerPayload",
    "MenuPickerVariant",
    "extract_ui_action",
    "render_ui_action",
    "to_menu_picker",
]
