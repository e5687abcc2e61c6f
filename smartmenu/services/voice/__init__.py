"""
Voice Service Factory

Single entry point for the voice credential relay plus the session state
machine used by voice clients.

Usage:
    from smartmenu.services.voice import get_voice_service, AgentMode

    # Returns MockVoiceService or ElevenLabsVoiceService based on ENV_MODE
    voice_service = get_voice_service()

    creds = await voice_service.get_signed_url(AgentMode.FOOD_INFO)

Environment Switching:
    - ENV_MODE=development → MockVoiceService (no API calls)
    - ENV_MODE=staging → ElevenLabsVoiceService
    - ENV_MODE=production → ElevenLabsVoiceService
"""

import logging
from functools import lru_cache

from smartmenu.core.config import get_settings
from smartmenu.services.voice.base import (
    AgentMode,
    BaseVoiceService,
    VoiceCredentials,
    VoiceServiceError,
)
from smartmenu.services.voice.elevenlabs import ElevenLabsVoiceService
from smartmenu.services.voice.mock import MockVoiceService
from smartmenu.services.voice.session import (
    BaseVoiceTransport,
    EventType,
    SessionState,
    VoiceEvent,
    VoiceSession,
    grounding_context,
    is_end_phrase,
    normalize_text,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_voice_service() -> BaseVoiceService:
    """
    Get the configured voice credential service.

    The instance is cached so every request shares one relay.

    Example:
        >>> service = get_voice_service()
        >>> print(service.provider_name)
        'mock'  # In development mode
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Voice Service: Using MockVoiceService (development mode)")
        return MockVoiceService()

    logger.info(
        f"Voice Service: Using ElevenLabsVoiceService "
        f"({settings.env_mode.value} mode)"
    )
    return ElevenLabsVoiceService(settings)


def reset_voice_service() -> None:
    """Clear the cached voice service; the next call builds a new one."""
    get_voice_service.cache_clear()
    logger.debug("Voice service cache cleared")


__all__ = [
    "get_voice_service",
    "reset_voice_service",
    "AgentMode",
    "BaseVoiceService",
    "VoiceCredentials",
    "VoiceServiceError",
    "MockVoiceService",
    "ElevenLabsVoiceService",
    "BaseVoiceTransport",
    "EventType",
    "SessionState",
    "VoiceEvent",
    "VoiceSession",
    "grounding_context",
    "is_end_phrase",
    "normalize_text",
]
