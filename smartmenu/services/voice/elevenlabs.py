"""
ElevenLabs Voice Service Implementation

Production credential relay for the ElevenLabs Conversational AI API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - ELEVENLABS_API_KEY
    - ELEVENLABS_AGENT_ID (menu picker agent)
    - ELEVENLABS_AGENT_ID_FOODINFO (dish information agent)
"""

import asyncio
import logging
from typing import Optional

import httpx

from smartmenu.core.config import Settings, get_settings
from smartmenu.services.voice.base import (
    AgentMode,
    BaseVoiceService,
    VoiceCredentials,
    VoiceServiceError,
)

logger = logging.getLogger(__name__)

SIGNED_URL_PATH = "/v1/convai/conversation/get-signed-url"
TOKEN_PATH = "/v1/convai/conversation/token"


class ElevenLabsVoiceService(BaseVoiceService):
    """
    Relays signed URLs and conversation tokens from ElevenLabs.

    Example:
        >>> service = ElevenLabsVoiceService()
        >>> creds = await service.get_signed_url(AgentMode.FOOD_INFO)
        >>> creds.signed_url
        'wss://api.elevenlabs.io/v1/convai/conversation?agent_id=...'
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self._api_key = settings.elevenlabs_api_key
        self._agent_ids = {
            AgentMode.PICKER: settings.elevenlabs_agent_id,
            AgentMode.FOOD_INFO: settings.elevenlabs_agent_id_foodinfo,
        }
        self._base_url = settings.elevenlabs_base_url.rstrip("/")
        self._timeout = settings.elevenlabs_timeout_seconds
        self._transport = transport

        if not self._api_key:
            logger.warning("ElevenLabs API key not configured")
        logger.info("ElevenLabsVoiceService initialized")

    @property
    def provider_name(self) -> str:
        return "elevenlabs"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"xi-api-key": self._api_key or ""},
            timeout=self._timeout,
            transport=self._transport,
        )

    def _agent_id(self, mode: AgentMode) -> str:
        if not self._api_key:
            raise VoiceServiceError("ELEVENLABS_API_KEY not configured")
        agent_id = self._agent_ids.get(mode)
        if not agent_id:
            raise VoiceServiceError(f"Agent ID not configured for mode: {mode.value}")
        return agent_id

    async def _get_json(self, client: httpx.AsyncClient, path: str, agent_id: str, label: str) -> dict:
        try:
            response = await client.get(path, params={"agent_id": agent_id})
        except httpx.HTTPError as e:
            logger.error(f"ElevenLabs {label} request failed: {e}")
            raise VoiceServiceError(f"ElevenLabs {label} request failed: {e}") from e

        if response.is_error:
            message = f"ElevenLabs {label} error [{response.status_code}]: {response.text}"
            logger.error(message)
            raise VoiceServiceError(message)
        return response.json()

    async def get_signed_url(self, mode: AgentMode = AgentMode.PICKER) -> VoiceCredentials:
        agent_id = self._agent_id(mode)
        async with self._client() as client:
            signed, token = await asyncio.gather(
                self._get_json(client, SIGNED_URL_PATH, agent_id, "signed-url"),
                self._get_json(client, TOKEN_PATH, agent_id, "token"),
            )

        logger.info(f"Signed URL issued for {mode.value} agent")
        return VoiceCredentials(
            mode=mode,
            agent_id=agent_id,
            signed_url=signed.get("signed_url"),
            token=token.get("token"),
            provider=self.provider_name,
        )

    async def get_conversation_token(self, mode: AgentMode = AgentMode.PICKER) -> VoiceCredentials:
        agent_id = self._agent_id(mode)
        async with self._client() as client:
            data = await self._get_json(client, TOKEN_PATH, agent_id, "token")

        return VoiceCredentials(
            mode=mode,
            agent_id=agent_id,
            token=data.get("token"),
            provider=self.provider_name,
        )

    async def health_check(self) -> bool:
        """True when the API key and the picker agent are configured."""
        return bool(self._api_key and self._agent_ids[AgentMode.PICKER])
