"""
                        Services Module

Business logic for the ordering front-end.

Services:
    - catalog: static menu and agent grounding text
    - ai: request parsing, set generation, replacements, UI actions
    - cart / orders / order_board: table ordering and the kitchen board
    - voice: ElevenLabs credential relay (mock in development) and sessions
    - excel_manager: lock-protected Excel export
"""

from smartmenu.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
