"""OpenAI-compatible LLM client for structured and free-text generation."""
from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ValidationError

from fathom.config import settings
from fathom.errors import GenerationError, ParseError
from fathom.research_core.extract.json_recovery import parse_model_json
from fathom.research_core.models.interfaces import StructuredResult, TextResult, Usage
from fathom.services import logger as log_service


def get_client(api_key: str | None = None, base_url: str | None = None) -> Any:
    """Get an AsyncOpenAI client pointed at the configured endpoint."""
    from openai import AsyncOpenAI

    resolved_base_url = (base_url or settings.openai_base_url).strip()
    return AsyncOpenAI(
        api_key=api_key or settings.openai_api_key,
        base_url=resolved_base_url,
    )


def get_model() -> str:
    """Get the configured model id."""
    return settings.llm_model


def _map_usage(response: Any) -> Usage:
    usage = getattr(response, "usage", None)
    prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
    completion_tokens = getattr(usage, "completion_tokens", 0) or 0
    total_tokens = getattr(usage, "total_tokens", 0) or prompt_tokens + completion_tokens
    return Usage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
    )


def _message_content(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""


class LLMClient:
    """Chat-completions wrapper implementing both generation provider protocols."""

    def __init__(
        self,
        model: str | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        client: Any | None = None,
    ):
        self.model = model or get_model()
        self.api_key = api_key
        self.base_url = base_url
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_client(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def _complete(self, caller: str, system_prompt: str, prompt: str, **kwargs: Any) -> Any:
        t0 = time.monotonic()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                **kwargs,
            )
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise GenerationError(f"{caller} request failed: {e}") from e

        usage = _map_usage(response)
        log_service.log_llm_call(
            model=self.model,
            caller=caller,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return response

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful assistant.",
    ) -> TextResult:
        response = await self._complete("generate_text", system_prompt, prompt)
        return TextResult(content=_message_content(response), usage=_map_usage(response))

    async def generate_structured(
        self,
        prompt: str,
        schema: type[BaseModel],
        system_prompt: str = "You are a helpful assistant.",
    ) -> StructuredResult:
        """Generate JSON and validate it against ``schema``.

        Output that cannot be recovered as JSON and output of the wrong shape
        both raise GenerationError.
        """
        response = await self._complete(
            "generate_structured",
            system_prompt,
            prompt,
            response_format={"type": "json_object"},
        )
        content = _message_content(response)
        if not content:
            raise GenerationError("No content received from LLM")

        try:
            parsed = parse_model_json(content)
            value = schema.model_validate(parsed)
        except (ParseError, ValidationError) as e:
            raise GenerationError(f"{schema.__name__} output rejected: {e}") from e

        return StructuredResult(value=value, usage=_map_usage(response))
