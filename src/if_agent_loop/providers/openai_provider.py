import json
from collections.abc import Sequence

import openai
from loguru import logger
from pydantic import BaseModel, ValidationError
from tenacity import retry

from if_agent_loop.dialogue import Message
from if_agent_loop.errors import GenerationError, RateLimitError
from if_agent_loop.provider import Generation
from if_agent_loop.providers.common import (
    default_retry_kwargs,
    paired_tool_call_ids,
    retry_after_seconds,
    schema_name,
    unpaired_as_text,
)
from if_agent_loop.usage import ModelUsage

_RETRYABLE = (
    RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
)


def _to_openai_messages(
    system_prompt: str,
    messages: Sequence[Message],
) -> list[dict]:
    """Convert dialogue messages to OpenAI chat format."""
    out: list[dict] = []

    if system_prompt:
        out.append({"role": "system", "content": system_prompt})

    paired = paired_tool_call_ids(messages)

    for msg in messages:
        if msg.role == "system" and msg.content == system_prompt:
            continue
        if msg.tool_call_id is not None and msg.tool_call_id not in paired:
            role = "assistant" if msg.role == "assistant" else "user"
            out.append({"role": role, "content": unpaired_as_text(msg)})
        elif msg.is_tool_call:
            out.append({
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": msg.tool_call_id,
                    "type": "function",
                    "function": {
                        "name": msg.tool_name,
                        "arguments": msg.content,
                    },
                }],
            })
        elif msg.role == "tool":
            out.append({
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "content": msg.content,
            })
        else:
            out.append({"role": msg.role, "content": msg.content})

    return out


def _to_response_format(schema: type[BaseModel]) -> dict:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": schema_name(schema),
            "schema": schema.model_json_schema(),
        },
    }


def _usage(response) -> ModelUsage:
    usage = getattr(response, "usage", None)
    if usage is None:
        return ModelUsage()
    prompt = usage.prompt_tokens or 0
    completion = usage.completion_tokens or 0
    return ModelUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=usage.total_tokens or prompt + completion,
    )


class OpenAIProvider:
    """Chat completions provider. Also serves OpenAI-compatible backends via ``base_url``."""

    def __init__(self, api_key: str, base_url: str | None = None):
        self._client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def _create(self, **kwargs):
        try:
            return await self._client.chat.completions.create(**kwargs)
        except openai.RateLimitError as ex:
            headers = getattr(getattr(ex, "response", None), "headers", None)
            raise RateLimitError(str(ex), retry_after=retry_after_seconds(headers)) from ex

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def generate_text(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str,
        messages: Sequence[Message],
    ) -> Generation:
        oai_messages = _to_openai_messages(system_prompt, messages)
        logger.debug(f"API request: model={model}, max_tokens={max_tokens}, messages={len(oai_messages)}")
        response = await self._create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=oai_messages,
        )
        text = response.choices[0].message.content or ""
        usage = _usage(response)
        logger.debug(
            f"API response: text_len={len(text)}, prompt_tokens={usage.prompt_tokens}, "
            f"completion_tokens={usage.completion_tokens}"
        )
        return Generation(text=text, usage=usage)

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def generate_object(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str,
        messages: Sequence[Message],
        schema: type[BaseModel],
    ) -> Generation:
        oai_messages = _to_openai_messages(system_prompt, messages)
        logger.debug(
            f"API request: model={model}, max_tokens={max_tokens}, "
            f"messages={len(oai_messages)}, schema={schema_name(schema)}"
        )
        response = await self._create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=oai_messages,
            response_format=_to_response_format(schema),
        )
        raw = response.choices[0].message.content or ""
        usage = _usage(response)
        logger.debug(
            f"API response: json_len={len(raw)}, prompt_tokens={usage.prompt_tokens}, "
            f"completion_tokens={usage.completion_tokens}"
        )
        try:
            obj = schema.model_validate_json(raw)
        except ValidationError as ex:
            logger.warning(f"Response did not match {schema_name(schema)}: {raw[:200]}")
            raise GenerationError(f"Response did not match {schema_name(schema)}: {ex}", usage) from ex
        return Generation(text=json.dumps(obj.model_dump(mode="json")), object=obj, usage=usage)
