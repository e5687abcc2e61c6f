"""
                SmartMenu Ordering API

Backend for a restaurant ordering front-end: menu catalog, rule-based
"AI" set builder, voice-assistant credential relay, cart pricing and a
polling order board for the kitchen.
"""

__version__ = "1.0.0"
