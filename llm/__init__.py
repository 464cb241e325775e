"""
LLM Client abstraction layer.

This module provides a unified interface for different LLM providers (OpenAI, Ollama, etc.)
using the Strategy Pattern, plus bounded retry for transient failures.
"""

from .llm_client_base import BaseLLMClient
from .openai_client import OpenAIClient
from .ollama_client import OllamaClient
from .client_factory import LLMClientFactory
from .retry import call_with_retry, classify_error

__all__ = [
    'BaseLLMClient',
    'OpenAIClient',
    'OllamaClient',
    'LLMClientFactory',
    'call_with_retry',
    'classify_error',
]
