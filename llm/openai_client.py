"""
OpenAI client implementation.

This wraps any OpenAI-compatible chat completions API (OpenAI, vLLM, ...)
and implements the BaseLLMClient interface.
"""

import os
from typing import Optional, Tuple, List
from openai import AsyncOpenAI

from core.exceptions import ConfigurationError
from utils.image_utils import png_bytes_to_base64
from .llm_client_base import BaseLLMClient


class OpenAIClient(BaseLLMClient):
    """
    LLM client for OpenAI-compatible APIs.
    """

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize OpenAI client.

        Args:
            model: Default model name (e.g., 'gpt-4o-2024-11-20')
            api_key: API key (defaults to OPENAI_API_KEY env var)
            base_url: Optional OpenAI-compatible endpoint
            **kwargs: Additional configuration
        """
        super().__init__(model, **kwargs)

        self.api_key = api_key or os.getenv('OPENAI_API_KEY')
        if not self.api_key:
            raise ConfigurationError(
                "OpenAI API key not found. Please set LLM_API_KEY or OPENAI_API_KEY "
                "environment variable or pass api_key parameter."
            )

        self.client = AsyncOpenAI(api_key=self.api_key, base_url=base_url)

    async def chat_completion_with_finish_reason(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        images: Optional[List[bytes]] = None,
        **kwargs
    ) -> Tuple[str, str]:
        """
        Call OpenAI API and return response with finish reason.

        Returns:
            Tuple of (response_text, finish_reason)
        """
        messages = self._build_messages(prompt, system_instruction)
        if images:
            content = [{"type": "text", "text": prompt}]
            for image in images:
                content.append({
                    "type": "image_url",
                    "image_url": {"url": f"data:image/png;base64,{png_bytes_to_base64(image)}"}
                })
            messages[-1]["content"] = content

        model = kwargs.pop('model', None) or self.model
        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            **kwargs
        )

        choice = response.choices[0]
        content = (choice.message.content or "").strip()
        finish_reason = choice.finish_reason

        # Map OpenAI finish reasons to our standard format
        if finish_reason == 'stop':
            finish_reason = 'finished'

        return content, finish_reason

    async def close(self):
        await self.client.close()
