"""Generative model client (OpenAI-compatible chat completions API)"""

import os
from typing import Optional

from loguru import logger
from openai import AsyncOpenAI

# Gemini exposes an OpenAI-compatible endpoint, so the same SDK serves both.
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-2.5-flash-lite"


def get_model_api_key() -> str:
    return os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY", "")


class ModelClient:
    """Single-shot text generation: one prompt in, one text completion out."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model or os.getenv("LLM_MODEL", DEFAULT_MODEL)
        self._api_key = api_key
        self._base_url = base_url
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use so the app can start without a key configured.
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key or get_model_api_key(),
                base_url=self._base_url or os.getenv("LLM_BASE_URL", DEFAULT_BASE_URL),
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        logger.debug(f"[curation] Calling model {self.model} with a {len(prompt)}-char prompt")
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""
