"""
LLM client construction.

Detection and generation share a single client per pipeline; the
client's default model is the generation default, and each stage
overrides the model per request (the detection model, or the model
mapped to the explanation mode).
"""
from core.exceptions import ConfigurationError
from .llm_client_base import BaseLLMClient
from .openai_client import OpenAIClient
from .ollama_client import OllamaClient

PROVIDERS = ('openai', 'ollama')


class LLMClientFactory:
    """Builds the shared pipeline client from a provider name."""

    @staticmethod
    def create_client(provider: str, model: str, **kwargs) -> BaseLLMClient:
        """
        Create the client for a provider.

        Args:
            provider: 'openai' (any OpenAI-compatible endpoint) or 'ollama'
            model: Model used when a request does not name one
            **kwargs: Keys from Settings.get_client_config(); the ones a
                provider does not use are ignored

        Raises:
            ConfigurationError: Unknown provider, or no OpenAI API key
        """
        provider = (provider or '').lower().strip()

        if provider == 'openai':
            return OpenAIClient(
                model=model,
                api_key=kwargs.get('api_key'),
                base_url=kwargs.get('base_url')
            )
        if provider == 'ollama':
            return OllamaClient(
                model=model,
                base_url=kwargs.get('ollama_base_url') or 'http://localhost:11434',
                timeout=kwargs.get('ollama_timeout', 300)
            )
        raise ConfigurationError(
            f"Unsupported LLM provider: '{provider}'. "
            f"Supported providers: {', '.join(PROVIDERS)}"
        )

    @classmethod
    def from_settings(cls, settings) -> BaseLLMClient:
        """Create the client described by LLM_PROVIDER and DEFAULT_MODEL."""
        return cls.create_client(
            settings.llm_provider,
            settings.default_model,
            **settings.get_client_config()
        )
