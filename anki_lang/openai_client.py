"""OpenAI API client with retry logic and card generation."""

import asyncio
from typing import Dict, List

import openai
import structlog
from tenacity import (
    RetryError,
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
)

from . import prompts
from .cloze import compose
from .models import EnglishClozeCard, EnglishClozePayload, HindiCard, HindiCardPayload
from .payload import parse_payload

REQUEST_TIMEOUT = 30

log = structlog.get_logger()


def create_openai_retry_decorator():
    """Create a retry decorator for OpenAI API calls."""
    return retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential_jitter(initial=2, max=60, jitter=1),
        retry=retry_if_exception_type((
            openai.RateLimitError,
            openai.APITimeoutError,
            openai.APIConnectionError,
            openai.APIError  # Covers 502, 503, 504, etc.
        ))
    )


class LLMClient:
    """Chat-completion client that turns model output into cards."""

    def __init__(self, api_key: str, model: str, base_url: str):
        if not api_key or not api_key.strip():
            raise ValueError("OpenAI API key cannot be empty")

        self.model = model
        self.client = openai.OpenAI(api_key=api_key, base_url=base_url)

    async def call_chat(self, system: str, user: str, temperature: float) -> str:
        """Call the Chat API in JSON mode with retry logic."""
        temperature = min(max(temperature, 0.0), 2.0)
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]

        @create_openai_retry_decorator()
        async def _make_api_call():
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(
                None,
                lambda: self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    response_format={"type": "json_object"},
                    timeout=REQUEST_TIMEOUT,
                )
            )
            if not response.choices:
                raise RuntimeError("OpenAI returned no choices")
            return response.choices[0].message.content or ""

        try:
            return await _make_api_call()
        except RetryError as e:
            # Extract the actual exception from the retry error
            actual_exception = e.last_attempt.exception()
            log.error("OpenAI API call failed after retries",
                      error=str(actual_exception),
                      model=self.model,
                      attempts=e.last_attempt.attempt_number)
            raise actual_exception
        except Exception as e:
            log.error("OpenAI API call failed", error=str(e), model=self.model)
            raise

    async def generate_english_cloze(self, word: str, temperature: float) -> EnglishClozeCard:
        """Ask the model for a cloze sentence and normalize its markup."""
        response = await self.call_chat(
            prompts.ENGLISH_CLOZE_SYSTEM,
            prompts.PROMPT_ENGLISH_CLOZE.format(word=word),
            temperature,
        )
        parsed = parse_payload(response, EnglishClozePayload)

        word_trimmed = parsed.word.strip()
        hint = (parsed.hint or "").strip() or None

        cloze_sentence = compose(parsed.cloze_sentence, word_trimmed, hint)
        log.info("English cloze generated", word=word_trimmed, sentence=cloze_sentence)

        return EnglishClozeCard(
            word=word_trimmed,
            cloze_sentence=cloze_sentence,
            translation=parsed.translation.strip(),
            hint=hint,
        )

    async def generate_hindi_card(self, word: str, temperature: float) -> HindiCard:
        """Ask the model for a Hindi sentence with its English translation."""
        response = await self.call_chat(
            prompts.HINDI_CARD_SYSTEM.format(word=word),
            prompts.PROMPT_HINDI_CARD.format(word=word),
            temperature,
        )
        parsed = parse_payload(response, HindiCardPayload)

        word_trimmed = parsed.word.strip()
        if word_trimmed not in parsed.hindi_sentence:
            log.warning("Hindi sentence may not contain original word", word=word_trimmed,
                        sentence=parsed.hindi_sentence)

        return HindiCard(
            word=word_trimmed,
            hindi_sentence=parsed.hindi_sentence.strip(),
            english_sentence=parsed.english_sentence.strip(),
        )
