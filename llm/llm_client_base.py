"""
Base abstract class for LLM clients.

This defines the interface that all LLM provider implementations must follow.
Both detection (vision) and explanation generation go through it.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple, Dict, Any, List

from utils.text_utils import extract_json


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients.

    All LLM provider implementations (OpenAI, Ollama, etc.) must inherit from this
    class and implement the abstract methods.
    """

    def __init__(self, model: str, **kwargs):
        """
        Initialize the LLM client.

        Args:
            model: Default model name/identifier
            **kwargs: Additional provider-specific configuration
        """
        self.model = model
        self.config = kwargs

    @abstractmethod
    async def chat_completion_with_finish_reason(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        images: Optional[List[bytes]] = None,
        **kwargs
    ) -> Tuple[str, str]:
        """
        Perform a chat completion request and return the finish reason.

        Args:
            prompt: The user prompt/message
            system_instruction: Optional system message
            images: Optional PNG-encoded images attached to the user message
            **kwargs: Additional parameters (model, temperature, max_tokens)

        Returns:
            Tuple of (response_text, finish_reason)
            finish_reason can be: 'finished', 'length', 'content_filter', etc.

        Raises:
            Exception: If the API call fails
        """
        pass

    async def chat_completion(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        images: Optional[List[bytes]] = None,
        **kwargs
    ) -> str:
        """
        Perform a chat completion request.

        Returns:
            The model's response as a string
        """
        content, _ = await self.chat_completion_with_finish_reason(
            prompt, system_instruction, images, **kwargs
        )
        return content

    async def close(self):
        """Release transport resources."""
        pass

    def extract_json(self, content: str) -> Any:
        """
        Extract JSON from LLM response.

        Raises:
            json.JSONDecodeError: If no valid JSON found
        """
        return extract_json(content)

    def _build_messages(
        self,
        prompt: str,
        system_instruction: Optional[str]
    ) -> List[Dict[str, Any]]:
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})
        return messages
