import asyncio
import copy
import json
import logging
from typing import Any, TypeVar
from uuid import UUID

import litellm
from pydantic import BaseModel

from src.ai.errors import (
    AINotConfiguredError,
    AIRuntimeError,
    AISchemaValidationError,
    classify_provider_error,
)
from src.config.settings import get_settings
from src.core.retry import retry_async


ModelT = TypeVar("ModelT", bound=BaseModel)

# Retried failures: timeouts, rate limits, provider errors and malformed structured output
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (AIRuntimeError,)


class LLMClient:
    """Manages LLM completion requests with bounded timeouts, retries and structured output."""

    def __init__(self, model: str | None = None) -> None:
        """Initialize LLMClient.

        Args:
            model: Overrides PRIMARY_LLM_MODEL for every request made by this client.
        """
        self._logger = logging.getLogger(__name__)
        self._model = model

    def _resolve_model(self, model: str | None) -> str:
        if model or self._model:
            return model or self._model  # type: ignore[return-value]
        try:
            return get_settings().primary_llm_model
        except ValueError as e:
            raise AINotConfiguredError(str(e)) from e

    async def complete(
        self,
        messages: list[dict[str, Any]],
        temperature: float | None = None,
        max_tokens: int | None = None,
        user_id: str | UUID | None = None,
        response_format: Any | None = None,
        model: str | None = None,
    ) -> Any:
        """Low-level single-attempt completion using LiteLLM directly."""
        settings = get_settings()
        request_model = self._resolve_model(model)

        kwargs: dict[str, Any] = {
            "model": request_model,
            "messages": messages,
            "temperature": temperature if temperature is not None else settings.AI_TEMPERATURE_DEFAULT,
            "max_tokens": max_tokens if max_tokens is not None else settings.AI_MAX_TOKENS_DEFAULT,
            "timeout": settings.AI_REQUEST_TIMEOUT,
        }
        if response_format is not None:
            kwargs["response_format"] = response_format
        if user_id:
            # Provider-side tracking / rate limits; dropped by litellm where unsupported
            kwargs["user"] = str(user_id)

        try:
            return await asyncio.wait_for(litellm.acompletion(**kwargs), timeout=settings.AI_REQUEST_TIMEOUT)
        except Exception as e:
            raise classify_provider_error(e) from e

    async def get_completion(
        self,
        messages: list[dict[str, Any]],
        response_model: type[ModelT] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        format_json: bool = False,
        user_id: str | UUID | None = None,
        model: str | None = None,
    ) -> Any:
        """Get a completion, retried with exponential backoff.

        With ``response_model`` the reply is validated into that model; with
        ``format_json`` it is parsed as JSON; otherwise the raw text is returned.
        """
        settings = get_settings()
        # Fail fast, before any retry, when no model is configured
        self._resolve_model(model)

        async def attempt() -> Any:
            if response_model is not None:
                response = await self.complete(
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    user_id=user_id,
                    response_format=self._build_response_format(response_model),
                    model=model,
                )
                return self._coerce_response_model(response, response_model)

            response = await self.complete(
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                user_id=user_id,
                response_format={"type": "json_object"} if format_json else None,
                model=model,
            )
            content = response.choices[0].message.content
            if format_json:
                return self._parse_json_content(content)
            return content

        return await retry_async(
            attempt,
            max_attempts=settings.AI_MAX_RETRIES,
            base_delay=settings.AI_RETRY_BASE_DELAY,
            retry_on=RETRYABLE_ERRORS,
            label="LLM completion",
        )

    def _build_response_format(self, response_model: type[BaseModel]) -> dict[str, Any]:
        schema = copy.deepcopy(response_model.model_json_schema())
        self._normalize_json_schema(schema)
        return {
            "type": "json_schema",
            "json_schema": {
                "name": response_model.__name__,
                "schema": schema,
            },
        }

    def _normalize_json_schema(self, node: Any) -> None:
        if not isinstance(node, dict):
            return

        definitions = node.get("$defs") or node.get("definitions")
        if isinstance(definitions, dict):
            for child in definitions.values():
                self._normalize_json_schema(child)

        props = node.get("properties")
        if isinstance(props, dict) and props:
            node["required"] = list(props.keys())
            if "additionalProperties" not in node:
                node["additionalProperties"] = False
            for child in props.values():
                self._normalize_json_schema(child)

        items = node.get("items")
        if isinstance(items, dict):
            self._normalize_json_schema(items)

        for key in ("allOf", "anyOf", "oneOf"):
            variants = node.get(key)
            if isinstance(variants, list):
                for child in variants:
                    self._normalize_json_schema(child)

    def _coerce_response_model(self, raw_response: Any, response_model: type[ModelT]) -> ModelT:
        choices = getattr(raw_response, "choices", None)
        message = getattr(choices[0], "message", None) if choices else None
        if message is not None:
            for candidate in (getattr(message, "parsed", None), getattr(message, "content", None)):
                converted = self._try_convert_payload(candidate, response_model)
                if converted is not None:
                    return converted

        msg = f"Unable to coerce structured response into {response_model.__name__}"
        self._logger.warning(msg)
        raise AISchemaValidationError(msg)

    def _try_convert_payload(self, payload: Any, response_model: type[ModelT]) -> ModelT | None:
        if payload is None:
            return None
        if isinstance(payload, response_model):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        if isinstance(payload, str):
            payload = self._parse_json_content(payload)
        if not isinstance(payload, dict):
            return None

        try:
            return response_model.model_validate(payload)
        except ValueError:
            return None

    def _extract_json_block(self, content: str) -> str | None:
        marker = "```json"
        lowered = content.lower()
        marker_index = lowered.find(marker)
        if marker_index == -1:
            return None
        block_start = marker_index + len(marker)
        block_end = content.find("```", block_start)
        if block_end == -1:
            return None
        block = content[block_start:block_end].strip()
        return block or None

    def _parse_json_content(self, content: str | None) -> dict[str, Any] | list[Any] | str:
        """Parse JSON content from AI response."""
        if not content:
            return ""
        try:
            json_block = self._extract_json_block(content)
            if json_block is not None:
                return json.loads(json_block)

            content_stripped = content.strip()
            if content_stripped.startswith(("{", "[")):
                return json.loads(content_stripped)

            return content

        except json.JSONDecodeError:
            self._logger.warning("Failed to parse JSON content, returning as string")
            return content
