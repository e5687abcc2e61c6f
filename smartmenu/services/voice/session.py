"""
Voice Session State Machine

Models one conversation with a voice agent as explicit states fed by a
stream of inbound transport events:

    idle -> connecting -> connected -> ended
                 \\-> failed

Transport callbacks (connect, disconnect, error, message) may arrive in any
order; each one is applied through ``dispatch`` with guards so that late or
repeated events are harmless. ``end`` is idempotent.

Outbound traffic (grounding context, greeting, hang-up) goes through a
``BaseVoiceTransport`` supplied by the caller.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from smartmenu.core.config import get_settings
from smartmenu.services.catalog import build_food_info_context, build_menu_picker_context
from smartmenu.services.ai.ui_action import MenuPickerPayload, extract_ui_action, to_menu_picker
from smartmenu.services.voice.base import AgentMode

logger = logging.getLogger(__name__)

GREETING = "Привет"

END_PHRASES = (
    "нет", "не надо", "все", "спасибо", "понятно", "хватит",
    "до свидания", "досвидания", "ок", "окей", "неа", "закончили", "достаточно", "пока",
)

_PUNCTUATION = re.compile(r"[.,!?;:…—–\-\"“”‘’'«»()\[\]{}]")


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ENDED = "ended"
    FAILED = "failed"


class EventType(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    MESSAGE = "message"


@dataclass
class VoiceEvent:
    type: EventType
    payload: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


class BaseVoiceTransport(ABC):
    """Outbound side of a live conversation."""

    @abstractmethod
    def send_contextual_update(self, text: str) -> None:
        pass

    @abstractmethod
    def send_user_message(self, text: str) -> None:
        pass

    @abstractmethod
    def end_session(self) -> None:
        pass


def normalize_text(text: str) -> str:
    text = text.lower().strip().replace("ё", "е")
    text = _PUNCTUATION.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def is_end_phrase(text: str) -> bool:
    """True when the user is closing the conversation ("спасибо", "нет, всё", ...)."""
    norm = normalize_text(text)
    if not norm:
        return False
    return any(
        norm == phrase or norm.startswith(phrase + " ") or norm.startswith(phrase + ",")
        for phrase in END_PHRASES
    )


def grounding_context(mode: AgentMode) -> str:
    """Text sent to the agent right after the connection opens."""
    if mode == AgentMode.FOOD_INFO:
        return build_food_info_context()
    settings = get_settings()
    return build_menu_picker_context(
        restaurant_name=settings.restaurant_name,
        city=settings.restaurant_city,
    )


def _fallback_text(message: dict[str, Any]) -> str:
    for key in ("message", "text", "transcript"):
        value = message.get(key)
        if isinstance(value, str) and value:
            return value
    data = message.get("data")
    if isinstance(data, dict) and isinstance(data.get("text"), str):
        return data["text"]
    content = message.get("content")
    if isinstance(content, list) and content and isinstance(content[0], dict):
        text = content[0].get("text")
        if isinstance(text, str):
            return text
    return ""


class VoiceSession:
    """One conversation with a picker or food-info agent."""

    def __init__(
        self,
        transport: BaseVoiceTransport,
        mode: AgentMode = AgentMode.PICKER,
        context: Optional[str] = None,
    ):
        self.transport = transport
        self.mode = mode
        self.context = context if context is not None else grounding_context(mode)
        self.state = SessionState.IDLE
        self._reset()

    def _reset(self) -> None:
        self.transcript = ""
        self.agent_text = ""
        self.last_error = ""
        self.picker: Optional[MenuPickerPayload] = None
        self.message_count = 0
        self.context_sent = False
        self.greeting_sent = False

    @property
    def is_active(self) -> bool:
        return self.state in (SessionState.CONNECTING, SessionState.CONNECTED)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> bool:
        """Begin connecting; ignored while a connection is already in progress."""
        if self.is_active:
            return False
        self._reset()
        self.state = SessionState.CONNECTING
        logger.info(f"Voice session ({self.mode.value}) connecting")
        return True

    def fail(self, error: str) -> None:
        """Mark a connection attempt as failed (credentials, microphone, ...)."""
        self.last_error = error
        if self.state in (SessionState.IDLE, SessionState.CONNECTING):
            self.state = SessionState.FAILED
            logger.warning(f"Voice session ({self.mode.value}) failed: {error}")

    def end(self) -> bool:
        """Hang up. Returns False when there was nothing to end."""
        if not self.is_active:
            return False
        try:
            self.transport.end_session()
        finally:
            self.state = SessionState.ENDED
            logger.info(f"Voice session ({self.mode.value}) ended")
        return True

    # =========================================================================
    # INBOUND EVENTS
    # =========================================================================

    def dispatch(self, event: VoiceEvent) -> None:
        if event.type == EventType.CONNECTED:
            self._on_connected()
        elif event.type == EventType.DISCONNECTED:
            self._on_disconnected()
        elif event.type == EventType.ERROR:
            self._on_error(event.error or str(event.payload))
        elif event.type == EventType.MESSAGE:
            self._on_message(event.payload)

    async def consume(self, events: "asyncio.Queue[Optional[VoiceEvent]]") -> None:
        """Apply queued events until the session ends, fails, or ``None`` arrives."""
        while True:
            event = await events.get()
            if event is None:
                break
            self.dispatch(event)
            if self.state in (SessionState.ENDED, SessionState.FAILED):
                break

    def _on_connected(self) -> None:
        if self.state != SessionState.CONNECTING:
            logger.debug(f"Ignoring connect in state {self.state.value}")
            return
        self.state = SessionState.CONNECTED
        self.last_error = ""

        if not self.context_sent:
            self.transport.send_contextual_update(self.context)
            self.context_sent = True
        if self.mode == AgentMode.PICKER and not self.greeting_sent:
            self.transport.send_user_message(GREETING)
            self.greeting_sent = True

    def _on_disconnected(self) -> None:
        self.context_sent = False
        self.greeting_sent = False
        if self.is_active:
            self.state = SessionState.ENDED
            logger.info(f"Voice session ({self.mode.value}) disconnected")

    def _on_error(self, error: str) -> None:
        self.last_error = error
        logger.error(f"Voice session ({self.mode.value}) error: {error}")
        if self.state == SessionState.CONNECTING:
            self.state = SessionState.FAILED

    def _on_message(self, message: dict[str, Any]) -> None:
        if self.state != SessionState.CONNECTED:
            return
        self.message_count += 1
        kind = message.get("type")

        if kind == "user_transcript":
            event = message.get("user_transcription_event") or {}
            self.handle_user_text(event.get("user_transcript") or "")
        elif kind == "agent_response":
            event = message.get("agent_response_event") or {}
            self.handle_agent_text(event.get("agent_response") or "")
        elif message.get("role") == "user" and message.get("message"):
            self.handle_user_text(message["message"])
        else:
            self.handle_agent_text(_fallback_text(message))

    # =========================================================================
    # TEXT HANDLING
    # =========================================================================

    def handle_user_text(self, text: str) -> None:
        if not text:
            return
        self.transcript = text
        if self.mode == AgentMode.FOOD_INFO and is_end_phrase(text):
            logger.info(f"End phrase detected: {text!r}")
            self.end()

    def handle_agent_text(self, text: str) -> Optional[MenuPickerPayload]:
        """Record an agent reply; a menu picker action closes the conversation."""
        if not text:
            return None
        self.agent_text = text
        picker = to_menu_picker(extract_ui_action(text))
        if picker is not None:
            self.picker = picker
            logger.info(f"Menu picker received: {picker.title!r} with {len(picker.variants)} variants")
            self.end()
        return picker
