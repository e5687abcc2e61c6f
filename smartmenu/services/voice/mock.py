"""
Mock Voice Service

Hands out fake conversation credentials for development. No calls leave
the machine.
"""

import logging

from smartmenu.services.voice.base import (
    AgentMode,
    BaseVoiceService,
    VoiceCredentials,
)

logger = logging.getLogger(__name__)


class MockVoiceService(BaseVoiceService):
    """Mock credential relay for development."""

    AGENT_IDS = {
        AgentMode.PICKER: "agent_mock_picker",
        AgentMode.FOOD_INFO: "agent_mock_foodinfo",
    }

    def __init__(self):
        self.issued = 0
        logger.info("MockVoiceService initialized")

    @property
    def provider_name(self) -> str:
        return "mock"

    def _token(self) -> str:
        self.issued += 1
        return f"tok_mock_{self.issued:06d}"

    async def get_signed_url(self, mode: AgentMode = AgentMode.PICKER) -> VoiceCredentials:
        agent_id = self.AGENT_IDS[mode]
        token = self._token()
        logger.info(f"Mock signed URL issued for {mode.value} agent")
        return VoiceCredentials(
            mode=mode,
            agent_id=agent_id,
            signed_url=f"wss://voice.mock.local/v1/convai/conversation?agent_id={agent_id}&token={token}",
            token=token,
            provider="mock",
        )

    async def get_conversation_token(self, mode: AgentMode = AgentMode.PICKER) -> VoiceCredentials:
        return VoiceCredentials(
            mode=mode,
            agent_id=self.AGENT_IDS[mode],
            token=self._token(),
            provider="mock",
        )

    async def health_check(self) -> bool:
        return True
