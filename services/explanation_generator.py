"""
Explanation Generator - One explanation per problem text.

Builds the instruction sets for a request, calls the text-generation
service with bounded retry, and parses the structured reply.
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from core.constants import (
    DEFAULT_GENERATION_PARAMS,
    PROMPT_GENERATE_EXPLANATION,
    PROMPT_GUIDELINES,
    PROMPT_SYSTEM_INSTRUCTION,
)
from core.exceptions import EmptyResponseError
from core.models import ExplanationMode, GenerationResult
from llm.llm_client_base import BaseLLMClient
from llm.retry import call_with_retry
from services.prompt_service import PromptService

logger = logging.getLogger(__name__)


def clamp_difficulty(value: Any) -> Optional[int]:
    """Coerce a difficulty rating into 1..5; anything unusable is None."""
    try:
        difficulty = int(value)
    except (TypeError, ValueError):
        return None
    return min(5, max(1, difficulty))


def parse_generation_reply(text: str, client: BaseLLMClient) -> GenerationResult:
    """
    Parse a generation reply.

    A JSON object with an 'explanation' field is unpacked; any other
    reply is taken verbatim as the explanation markdown. The unparsed
    text is kept on the result for failure diagnostics.
    """
    try:
        data = client.extract_json(text)
    except json.JSONDecodeError:
        return GenerationResult(markdown=text.strip(), raw=text)

    if not isinstance(data, dict) or not isinstance(data.get('explanation'), str):
        return GenerationResult(markdown=text.strip(), raw=text)

    concepts = data.get('core_concepts') or []
    if not isinstance(concepts, list):
        concepts = [concepts]

    return GenerationResult(
        markdown=data['explanation'].strip(),
        core_concepts=[str(c) for c in concepts if c],
        difficulty=clamp_difficulty(data.get('difficulty')),
        raw=text
    )


class ExplanationGenerator:
    """Calls the text-generation service for a single problem."""

    def __init__(
        self,
        client: BaseLLMClient,
        prompts: PromptService,
        mode_models: Optional[Dict[str, str]] = None,
        max_attempts: int = DEFAULT_GENERATION_PARAMS['retry_max_attempts'],
        initial_delay: float = DEFAULT_GENERATION_PARAMS['retry_initial_delay'],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize explanation generator.

        Args:
            client: LLM client
            prompts: Instruction-set loader
            mode_models: Explanation mode to model name (default: the client's model)
            max_attempts: Total attempts per problem on retriable errors
            initial_delay: First retry delay in seconds, doubled per retry
            sleep: Awaitable sleep, replaceable in tests
        """
        self.client = client
        self.prompts = prompts
        self.mode_models = mode_models or {}
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.sleep = sleep

    async def build_system_instruction(self, use_guidelines: bool) -> str:
        system_instruction = await self.prompts.get(PROMPT_SYSTEM_INSTRUCTION)
        if use_guidelines:
            guidelines = await self.prompts.get(PROMPT_GUIDELINES)
            system_instruction = f"{system_instruction}\n\n{guidelines}"
        return system_instruction

    async def build_prompt(self, problem_text: str) -> str:
        template = await self.prompts.get(PROMPT_GENERATE_EXPLANATION)
        return template.replace('{{problemText}}', problem_text)

    def _request_options(self, mode: ExplanationMode) -> Dict[str, Any]:
        mode = ExplanationMode(mode)
        if mode == ExplanationMode.QUALITY:
            max_tokens = DEFAULT_GENERATION_PARAMS['quality_max_tokens']
        else:
            max_tokens = DEFAULT_GENERATION_PARAMS['max_tokens']

        options = {
            'temperature': DEFAULT_GENERATION_PARAMS['temperature'],
            'max_tokens': max_tokens,
        }
        model = self.mode_models.get(mode.value)
        if model:
            options['model'] = model
        return options

    async def generate(
        self,
        problem_text: str,
        mode: ExplanationMode = ExplanationMode.DEFAULT,
        use_guidelines: bool = False
    ) -> GenerationResult:
        """
        Generate an explanation for one problem.

        Raises:
            ConfigurationError: If an instruction set is missing
            QuotaExceededError: On quota exhaustion (not retried)
            TransientServiceError: When retries are exhausted
            EmptyResponseError: If the service returns no text
        """
        system_instruction = await self.build_system_instruction(use_guidelines)
        prompt = await self.build_prompt(problem_text)
        options = self._request_options(mode)

        async def attempt():
            return await self.client.chat_completion_with_finish_reason(
                prompt,
                system_instruction=system_instruction,
                **options
            )

        text, finish_reason = await call_with_retry(
            attempt,
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            sleep=self.sleep
        )

        if not text or not text.strip():
            raise EmptyResponseError(
                f"Generation returned no text (finish reason: {finish_reason})"
            )
        if finish_reason == 'length':
            logger.warning("Generation hit the token limit; explanation may be truncated")

        return parse_generation_reply(text, self.client)
