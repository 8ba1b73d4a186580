"""
DeepSeek chat client (OpenAI-compatible API).

Raises when no API key is configured or the upstream call fails; callers
treat any exception as a signal to fall back to a canned reply.
"""

from typing import Any, Dict, List, Optional

from banter.config import Settings, get_settings
from banter.logging_config import get_logger

logger = get_logger(__name__)


class DeepSeekClient:
    """Thin adapter over ``openai.AsyncOpenAI`` pointed at DeepSeek."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or self.settings.llm_configured

    def _get_client(self):
        if self._client is None:
            if not self.settings.llm_configured:
                raise RuntimeError("DeepSeek API key not configured")
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self.settings.deepseek_api_key.strip(),
                base_url=self.settings.deepseek_base_url,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=self.settings.llm_max_retries,
            )
        return self._client

    @staticmethod
    def build_messages(
        system_prompt: str,
        history: List[Dict[str, str]],
        user_message: str,
    ) -> List[Dict[str, str]]:
        """
        Structure:
        1. System prompt (persona and context)
        2. Recent history (user + assistant turns)
        3. Current user message
        """
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": user_message})
        return messages

    async def generate(
        self,
        system_prompt: str,
        history: List[Dict[str, str]],
        user_message: str,
    ) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.settings.deepseek_model,
            messages=self.build_messages(system_prompt, history, user_message),
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
        )
        content = (response.choices[0].message.content or "").strip()
        usage = getattr(response, "usage", None)
        logger.debug(
            "DeepSeek reply received",
            extra={"tokens_used": getattr(usage, "total_tokens", None)},
        )
        return content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
