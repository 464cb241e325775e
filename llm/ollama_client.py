"""
Ollama client implementation.

This wraps the Ollama API and implements the BaseLLMClient interface.
"""

import httpx
import json
from typing import Optional, Tuple, List
from utils.image_utils import png_bytes_to_base64
from .llm_client_base import BaseLLMClient


class OllamaClient(BaseLLMClient):
    """
    LLM client for Ollama (local LLM server).
    """

    def __init__(
        self,
        model: str,
        base_url: str = "http://localhost:11434",
        timeout: int = 300,
        **kwargs
    ):
        """
        Initialize Ollama client.

        Args:
            model: Ollama model name (e.g., 'qwen2.5vl:32b', 'llama3:latest')
            base_url: Ollama server URL (default: http://localhost:11434)
            timeout: Request timeout in seconds (default: 300)
            **kwargs: Additional configuration
        """
        super().__init__(model, **kwargs)

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        # Create async HTTP client
        self.client = kwargs.get('http_client') or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout)
        )

    async def chat_completion_with_finish_reason(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        images: Optional[List[bytes]] = None,
        **kwargs
    ) -> Tuple[str, str]:
        """
        Call Ollama chat API and return response with finish reason.

        Returns:
            Tuple of (response_text, finish_reason)

        Raises:
            RuntimeError: If the server is unreachable or returns an error;
                the message carries the HTTP status for error classification
        """
        messages = self._build_messages(prompt, system_instruction)
        if images:
            messages[-1]["images"] = [png_bytes_to_base64(image) for image in images]

        payload = {
            "model": kwargs.get('model') or self.model,
            "messages": messages,
            "stream": False,
        }

        # Add optional parameters
        options = {}
        if 'temperature' in kwargs:
            options['temperature'] = kwargs['temperature']
        if 'max_tokens' in kwargs:
            options['num_predict'] = kwargs['max_tokens']
        if options:
            payload['options'] = options

        try:
            response = await self.client.post("/api/chat", json=payload)
            response.raise_for_status()
            result = response.json()
        except httpx.ConnectError as e:
            raise RuntimeError(
                f"Could not connect to Ollama server at {self.base_url} (unavailable). "
                f"Error: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise RuntimeError(
                f"Ollama server returned error: {e.response.status_code} - {e.response.text}"
            ) from e
        except json.JSONDecodeError as e:
            raise RuntimeError(
                f"Invalid JSON response from Ollama: {response.text}"
            ) from e

        content = (result.get('message') or {}).get('content', '').strip()

        # Ollama uses 'done_reason' field
        done_reason = result.get('done_reason', 'stop')
        if done_reason == 'length':
            finish_reason = 'length'
        else:
            finish_reason = 'finished'

        return content, finish_reason

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
