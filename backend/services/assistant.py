# backend/services/assistant.py

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import httpx

from backend.core.errors import Unavailable

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "you are a helpful assistant."
MAX_TOKENS = 1024


class ReplyGenerator(Protocol):
    async def generate(self, text: str) -> Optional[str]: ...


class GroqReplyGenerator:
    """
    Chat-completions client for Groq's OpenAI-compatible API.

    Any transport error, non-2xx status or unexpected payload is raised as
    ``Unavailable``; deciding what to do about it is the bridge's job.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "llama3-8b-8192",
        base_url: str = "https://api.groq.com/openai/v1",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.client = client

    async def generate(self, text: str) -> Optional[str]:
        payload = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"Respond to the customers query:{text}"},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        url = f"{self.base_url}/chat/completions"

        try:
            if self.client is not None:
                response = await self.client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise Unavailable(f"Assistant request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise Unavailable("Assistant returned an unexpected payload") from e
        return content or None


# ============================================================================
# ASSISTANT BRIDGE
# ============================================================================

class AssistantBridge:
    """
    Best-effort assistant enrichment for posted messages.

    Only bodies containing the trigger token (case-insensitive) reach the
    generator, and every call is bounded by ``timeout`` seconds. Timeouts
    and failures are logged and turn into ``None``: the message is stored
    without a reply and the poster never sees an error.
    """

    def __init__(
        self,
        generator: Optional[ReplyGenerator],
        trigger: str = "/help",
        timeout: float = 10.0,
    ) -> None:
        self.generator = generator
        self.trigger = trigger.lower()
        self.timeout = timeout

    def is_triggered(self, body: str) -> bool:
        return bool(self.trigger) and self.trigger in body.lower()

    async def maybe_reply(self, body: str) -> Optional[str]:
        if self.generator is None or not self.is_triggered(body):
            return None
        try:
            reply = await asyncio.wait_for(self.generator.generate(body), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Assistant timed out after %.1fs", self.timeout)
            return None
        except Exception as e:
            logger.error("Assistant unavailable: %s", e)
            return None
        logger.info("Assistant replied (%d chars)", len(reply or ""))
        return reply
