"""
Voice Service Abstract Base Class

Defines the interface for obtaining conversation credentials from the
conversational voice provider. The browser opens the actual voice session
with these credentials; this backend only relays them so the API key never
leaves the server.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AgentMode(str, Enum):
    """Which voice agent a session talks to."""
    PICKER = "picker"        # builds menu sets, answers with UI_ACTION blocks
    FOOD_INFO = "foodinfo"   # answers questions about dishes and allergens


class VoiceServiceError(Exception):
    """Credential relay failed; the message is safe to show to the user."""


@dataclass
class VoiceCredentials:
    """Result from a credential request."""
    mode: AgentMode
    agent_id: str
    signed_url: Optional[str] = None
    token: Optional[str] = None
    provider: str = "unknown"


class BaseVoiceService(ABC):
    """Abstract base class for voice credential providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def get_signed_url(self, mode: AgentMode = AgentMode.PICKER) -> VoiceCredentials:
        """Signed WebSocket URL plus a conversation token for ``mode``."""
        pass

    @abstractmethod
    async def get_conversation_token(self, mode: AgentMode = AgentMode.PICKER) -> VoiceCredentials:
        """Conversation token only (WebRTC clients)."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service configuration or connectivity."""
        pass
