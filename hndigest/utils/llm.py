"""
Chat-completion client for HN Digest.

Wraps an OpenAI-compatible endpoint (Ollama by default) and returns responses
validated against a pydantic model.
"""
import asyncio
import logging
import re
from typing import Optional, Type, TypeVar

import async_timeout
import backoff
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from hndigest.config import SummarizerSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (500, 503)
DEFAULT_WARMUP_DELAY = 60.0
CODE_FENCE_PATTERN = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)

ResponseT = TypeVar('ResponseT', bound=BaseModel)


class LLMError(Exception):
    """The model call failed or returned something that does not fit the schema."""


def warmup_delay(exc: Exception) -> Optional[float]:
    """
    Seconds to wait when the server reports that the model is still loading.

    Args:
        exc: Exception raised by the OpenAI client

    Returns:
        The server's ``estimated_time`` (default 60s), or None for other errors
    """
    body = getattr(exc, 'body', None)
    message = str(exc)
    estimated = None
    if isinstance(body, dict):
        error = body.get('error')
        if isinstance(error, dict):
            message = f"{message} {error.get('message', '')}"
        elif error:
            message = f"{message} {error}"
        estimated = body.get('estimated_time')

    if 'loading' not in message.lower():
        return None
    try:
        return float(estimated) if estimated is not None else DEFAULT_WARMUP_DELAY
    except (TypeError, ValueError):
        return DEFAULT_WARMUP_DELAY


def _should_give_up(exc: Exception) -> bool:
    status = getattr(exc, 'status_code', None)
    return status not in RETRYABLE_STATUS_CODES or warmup_delay(exc) is not None


def _strip_code_fences(text: str) -> str:
    return CODE_FENCE_PATTERN.sub('', text.strip())


class LLMClient:
    """
    Schema-validated chat completions with retries.
    """
    def __init__(self, settings: Optional[SummarizerSettings] = None, client: Optional[AsyncOpenAI] = None):
        """
        Initialize the LLMClient.

        Args:
            settings: Summarizer settings (endpoint, model, sampling, retry policy)
            client: Pre-built AsyncOpenAI client, built from settings when omitted
        """
        self.settings = settings or SummarizerSettings()
        self.client = client or AsyncOpenAI(
            api_key=self.settings.api_key,
            base_url=self.settings.base_url,
            max_retries=0,
        )
        self._create_with_retry = backoff.on_exception(
            backoff.expo,
            openai.APIStatusError,
            giveup=_should_give_up,
            max_tries=max(1, self.settings.max_retries),
            factor=self.settings.retry_base_delay,
            logger=logger,
        )(self._create_completion)

    @property
    def model(self) -> str:
        return self.settings.model

    async def _create_completion(self, **kwargs):
        async with async_timeout.timeout(self.settings.request_timeout):
            return await self.client.chat.completions.create(**kwargs)

    async def complete(self, system_prompt: str, user_prompt: str, response_model: Type[ResponseT],
                       max_tokens: Optional[int] = None) -> ResponseT:
        """
        Run one chat completion and validate the reply.

        Args:
            system_prompt: System message
            user_prompt: User message
            response_model: Pydantic model the JSON reply must satisfy
            max_tokens: Token ceiling, defaults to ``settings.max_summary_length``

        Returns:
            Validated response_model instance

        Raises:
            LLMError: On transport errors, timeouts, exhausted retries or invalid replies
        """
        request = dict(
            model=self.settings.model,
            messages=[
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_prompt},
            ],
            max_tokens=max_tokens or self.settings.max_summary_length,
            temperature=self.settings.temperature,
            top_p=self.settings.top_p,
            response_format={
                'type': 'json_schema',
                'json_schema': {
                    'name': response_model.__name__,
                    'schema': response_model.model_json_schema(),
                },
            },
        )

        warmups = 0
        while True:
            try:
                response = await self._create_with_retry(**request)
                break
            except openai.APIStatusError as e:
                delay = warmup_delay(e)
                if delay is None or warmups >= self.settings.max_warmup_retries:
                    raise LLMError(f"Model request failed with status {e.status_code}: {e}") from e
                warmups += 1
                logger.warning(f"Model is loading, retrying after {delay:g} seconds")
                await asyncio.sleep(delay)
            except asyncio.TimeoutError as e:
                raise LLMError(f"Model request timed out after {self.settings.request_timeout:g} seconds") from e
            except openai.APIError as e:
                raise LLMError(f"Model request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise LLMError("Model returned an empty response")

        content = _strip_code_fences(response.choices[0].message.content)
        try:
            return response_model.model_validate_json(content)
        except ValidationError as e:
            raise LLMError(f"Response does not match {response_model.__name__}: {e}") from e
