import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import openai

from schoolhub.common.exceptions import ProviderError
from schoolhub.config.settings import Settings, settings as default_settings
from schoolhub.features.tutor.cleaning import clean_answer
from schoolhub.features.tutor.prompts import build_persona_prompt, fallback_answer
from schoolhub.features.tutor.schemas import TutorAnswer

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "fallback"
NO_API_KEY_PROVIDER = "fallback-no-api-key"


class CompletionProvider:
    """One upstream model that turns a chat transcript into an answer"""

    name: str = "provider"

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        raise NotImplementedError


class OpenRouterModel(CompletionProvider):
    """A single model behind an OpenRouter compatible chat completions API"""

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        model: str,
        *,
        max_tokens: int = 800,
        temperature: float = 0.8,
        top_p: float = 0.9,
    ):
        self.client = client
        self.name = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        response = await self.client.chat.completions.create(
            model=self.name,
            messages=messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
        )
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError(f"Malformed response from {self.name}: {e}") from e
        if not content or not content.strip():
            raise ProviderError(f"Empty response from {self.name}")
        return content


class TutorProviderAdapter:
    """
    Ordered fallback over completion providers.

    Providers are tried one at a time in list order with a fixed pause
    between attempts. Answers come back cleaned of markup, and a reply with
    nothing left after cleaning counts as a failed attempt. When every
    provider fails, or none is configured, a canned subject-specific answer
    is returned instead, so callers always get a ``TutorAnswer``.
    """

    def __init__(self, providers: Sequence[CompletionProvider], retry_delay: float = 0.5):
        self.providers = list(providers)
        self.retry_delay = retry_delay

    async def get_answer(
        self,
        question: str,
        turns: List[Dict[str, str]],
        student_name: str,
        grade_level: str,
    ) -> TutorAnswer:
        """``turns`` already ends with the new question as the last user turn"""
        if not self.providers:
            logger.info("No text generation provider configured, using canned answer")
            return TutorAnswer(
                answer=clean_answer(fallback_answer(question, student_name, grade_level)),
                used_fallback=True,
                provider_used=NO_API_KEY_PROVIDER,
            )

        messages = [{"role": "system", "content": build_persona_prompt(student_name, grade_level)}, *turns]

        for index, provider in enumerate(self.providers):
            try:
                answer = clean_answer(await provider.complete(messages))
                if not answer:
                    raise ProviderError(f"Nothing left of the {provider.name} answer after cleaning")
                logger.info(f"Tutor answer produced by {provider.name}")
                return TutorAnswer(answer=answer, used_fallback=False, provider_used=provider.name)
            except Exception as e:
                logger.warning(f"Provider {provider.name} failed: {e}")
                if index < len(self.providers) - 1:
                    await asyncio.sleep(self.retry_delay)

        logger.warning("All tutor providers failed, using canned answer")
        return TutorAnswer(
            answer=clean_answer(fallback_answer(question, student_name, grade_level)),
            used_fallback=True,
            provider_used=FALLBACK_PROVIDER,
        )


def build_tutor_adapter(config: Optional[Settings] = None) -> TutorProviderAdapter:
    config = config or default_settings
    if not config.OPENROUTER_API_KEY:
        return TutorProviderAdapter([], retry_delay=config.TUTOR_RETRY_DELAY)

    client = openai.AsyncOpenAI(
        api_key=config.OPENROUTER_API_KEY,
        base_url=config.OPENROUTER_BASE_URL,
        timeout=config.TUTOR_REQUEST_TIMEOUT,
        max_retries=0,
        default_headers={
            "HTTP-Referer": config.APP_URL,
            "X-Title": "School AI Tutor",
        },
    )
    providers = [
        OpenRouterModel(
            client,
            model,
            max_tokens=config.TUTOR_MAX_TOKENS,
            temperature=config.TUTOR_TEMPERATURE,
            top_p=config.TUTOR_TOP_P,
        )
        for model in config.TUTOR_MODELS
    ]
    return TutorProviderAdapter(providers, retry_delay=config.TUTOR_RETRY_DELAY)
