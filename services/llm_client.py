"""
Text generation client wrapping the OpenAI chat completions API
"""
import logging
from typing import Optional

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class TextGenerator:
    """
    One-shot prompt -> text calls against OpenAI.

    Built once at startup and closed by the shutdown hook.
    """

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", client: AsyncOpenAI = None):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncOpenAI(api_key=api_key)
        if self._client is None:
            logger.warning("OPENAI_API_KEY is not set. Task extraction will be unavailable.")

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def generate(self, prompt: str, max_tokens: int) -> str:
        """
        Send a single user prompt and return the first text segment of the reply.

        Raises:
            RuntimeError: no API key configured
            openai.OpenAIError: the remote call failed
        """
        if self._client is None:
            raise RuntimeError("OpenAI API key not configured")

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
