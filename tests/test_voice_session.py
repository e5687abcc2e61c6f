"""Tests for the voice session state machine."""

import asyncio

import pytest

from smartmenu.services.voice import (
    AgentMode,
    BaseVoiceTransport,
    EventType,
    SessionState,
    VoiceEvent,
    VoiceSession,
    grounding_context,
    is_end_phrase,
    normalize_text,
)

PICKER_TEXT = (
    'Готово! <UI_ACTION>{"action": "OPEN_MENU_PICKER", "title": "Меню", '
    '"variants": [{"name": "A", "items": [{"id": "h1", "name": "Кальян", "price": 7000}]}]}</UI_ACTION>'
)


class RecordingTransport(BaseVoiceTransport):
    def __init__(self, fail_on_end=False):
        self.contexts = []
        self.messages = []
        self.ended = 0
        self.fail_on_end = fail_on_end

    def send_contextual_update(self, text):
        self.contexts.append(text)

    def send_user_message(self, text):
        self.messages.append(text)

    def end_session(self):
        self.ended += 1
        if self.fail_on_end:
            raise ConnectionError("socket already closed")


def connected(mode=AgentMode.PICKER, **kwargs):
    transport = RecordingTransport(**kwargs)
    session = VoiceSession(transport, mode, context="CTX")
    session.start()
    session.dispatch(VoiceEvent(EventType.CONNECTED))
    return session, transport


def user_says(text):
    return VoiceEvent(EventType.MESSAGE, {
        "type": "user_transcript",
        "user_transcription_event": {"user_transcript": text},
    })


def agent_says(text):
    return VoiceEvent(EventType.MESSAGE, {
        "type": "agent_response",
        "agent_response_event": {"agent_response": text},
    })


def test_normalize_text():
    assert normalize_text("  Всё, СПАСИБО!  ") == "все спасибо"


@pytest.mark.parametrize("text", ["Спасибо!", "нет, всё", "Ок.", "До свидания", "пока пока", "Достаточно"])
def test_end_phrases(text):
    assert is_end_phrase(text)


@pytest.mark.parametrize("text", ["", "нетушки", "Расскажите про стейк", "а что в пасте?"])
def test_not_end_phrases(text):
    assert not is_end_phrase(text)


def test_picker_connect_sends_context_and_greeting_once():
    session, transport = connected()
    session.dispatch(VoiceEvent(EventType.CONNECTED))
    assert session.state == SessionState.CONNECTED
    assert transport.contexts == ["CTX"]
    assert transport.messages == ["Привет"]


def test_food_info_connect_sends_context_only():
    session, transport = connected(AgentMode.FOOD_INFO)
    assert transport.contexts == ["CTX"]
    assert transport.messages == []


def test_default_context_matches_mode():
    session = VoiceSession(RecordingTransport(), AgentMode.FOOD_INFO)
    assert session.context == grounding_context(AgentMode.FOOD_INFO)
    assert session.context.startswith("Справочник меню")
    assert "<UI_ACTION>" in grounding_context(AgentMode.PICKER)


def test_start_ignored_while_active():
    session, _ = connected()
    assert session.start() is False
    assert session.state == SessionState.CONNECTED


def test_agent_picker_ends_session():
    session, transport = connected()
    session.dispatch(agent_says(PICKER_TEXT))
    assert session.picker is not None
    assert session.picker.variants[0].items[0].id == "h1"
    assert session.state == SessionState.ENDED
    assert transport.ended == 1


def test_agent_text_without_action_keeps_session():
    session, transport = connected()
    session.dispatch(agent_says("Сколько вас будет?"))
    assert session.agent_text == "Сколько вас будет?"
    assert session.picker is None
    assert session.state == SessionState.CONNECTED


def test_fallback_text_fields():
    session, _ = connected()
    session.dispatch(VoiceEvent(EventType.MESSAGE, {"content": [{"text": PICKER_TEXT}]}))
    assert session.state == SessionState.ENDED

    session, _ = connected()
    session.dispatch(VoiceEvent(EventType.MESSAGE, {"data": {"text": "Привет!"}}))
    assert session.agent_text == "Привет!"


def test_food_info_end_phrase_ends_session():
    session, transport = connected(AgentMode.FOOD_INFO)
    session.dispatch(user_says("А стейк острый?"))
    assert session.state == SessionState.CONNECTED
    session.dispatch(VoiceEvent(EventType.MESSAGE, {"role": "user", "message": "Спасибо, понятно"}))
    assert session.transcript == "Спасибо, понятно"
    assert session.state == SessionState.ENDED
    assert transport.ended == 1


def test_picker_ignores_end_phrases():
    session, _ = connected()
    session.dispatch(user_says("спасибо"))
    assert session.state == SessionState.CONNECTED


def test_end_is_idempotent():
    session, transport = connected()
    assert session.end() is True
    assert session.end() is False
    assert transport.ended == 1


def test_end_marks_ended_even_if_transport_fails():
    session, transport = connected(fail_on_end=True)
    with pytest.raises(ConnectionError):
        session.end()
    assert session.state == SessionState.ENDED


def test_disconnect_resets_flags():
    session, transport = connected()
    session.dispatch(VoiceEvent(EventType.DISCONNECTED))
    assert session.state == SessionState.ENDED
    assert not session.context_sent
    assert session.end() is False

    session.start()
    session.dispatch(VoiceEvent(EventType.CONNECTED))
    assert transport.contexts == ["CTX", "CTX"]


def test_error_while_connecting_fails():
    session = VoiceSession(RecordingTransport(), AgentMode.PICKER, context="CTX")
    session.start()
    session.dispatch(VoiceEvent(EventType.ERROR, error="mic denied"))
    assert session.state == SessionState.FAILED
    assert session.last_error == "mic denied"
    session.dispatch(VoiceEvent(EventType.CONNECTED))
    assert session.state == SessionState.FAILED


def test_error_while_connected_is_recorded():
    session, _ = connected()
    session.dispatch(VoiceEvent(EventType.ERROR, error="glitch"))
    assert session.state == SessionState.CONNECTED
    assert session.last_error == "glitch"


def test_fail_before_connect():
    session = VoiceSession(RecordingTransport(), context="CTX")
    session.fail("Agent ID not configured for mode: picker")
    assert session.state == SessionState.FAILED


def test_messages_ignored_unless_connected():
    session = VoiceSession(RecordingTransport(), context="CTX")
    session.dispatch(agent_says(PICKER_TEXT))
    assert session.picker is None
    assert session.message_count == 0


def test_consume_queue_until_ended():
    transport = RecordingTransport()
    session = VoiceSession(transport, AgentMode.PICKER, context="CTX")

    async def scenario():
        queue = asyncio.Queue()
        for event in (
            VoiceEvent(EventType.CONNECTED),
            agent_says("Сколько вас?"),
            agent_says(PICKER_TEXT),
            agent_says("не дойдёт"),
        ):
            queue.put_nowait(event)
        session.start()
        await session.consume(queue)
        return queue.qsize()

    left = asyncio.run(scenario())
    assert session.state == SessionState.ENDED
    assert session.message_count == 2
    assert left == 1


def test_consume_stops_on_none():
    session = VoiceSession(RecordingTransport(), context="CTX")

    async def scenario():
        queue = asyncio.Queue()
        session.start()
        queue.put_nowait(VoiceEvent(EventType.CONNECTED))
        queue.put_nowait(None)
        await session.consume(queue)

    asyncio.run(scenario())
    assert session.state == SessionState.CONNECTED


def test_deeply_nested_agent_block_keeps_session():
    session, transport = connected()
    session.dispatch(agent_says("<UI_ACTION>" + "{\"a\":" * 50000 + "1" + "}" * 50000 + "</UI_ACTION>"))
    assert session.picker is None
    assert session.state == SessionState.CONNECTED
    assert transport.ended == 0
