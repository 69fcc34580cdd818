import json
from collections.abc import Sequence

import anthropic
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
    anthropic.APIConnectionError,
    anthropic.APITimeoutError,
)


def _to_anthropic_messages(
    system_prompt: str,
    messages: Sequence[Message],
) -> tuple[str, list[dict]]:
    """Convert dialogue messages to (system, messages) in Anthropic format.

    System-role messages are folded into the system prompt. Consecutive
    messages with the same role are merged into one content block list.
    """
    system_parts = [system_prompt] if system_prompt else []
    out: list[dict] = []
    paired = paired_tool_call_ids(messages)

    def push(role: str, block: dict) -> None:
        if out and out[-1]["role"] == role:
            out[-1]["content"].append(block)
        else:
            out.append({"role": role, "content": [block]})

    for msg in messages:
        if msg.role == "system":
            if msg.content != system_prompt:
                system_parts.append(msg.content)
        elif msg.tool_call_id is not None and msg.tool_call_id not in paired:
            role = "assistant" if msg.role == "assistant" else "user"
            push(role, {"type": "text", "text": unpaired_as_text(msg)})
        elif msg.is_tool_call:
            push("assistant", {
                "type": "tool_use",
                "id": msg.tool_call_id,
                "name": msg.tool_name,
                "input": json.loads(msg.content),
            })
        elif msg.role == "tool":
            push("user", {
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.content,
            })
        else:
            push(msg.role, {"type": "text", "text": msg.content})

    # The window may have evicted the opening user turn.
    if out and out[0]["role"] != "user":
        out.insert(0, {"role": "user", "content": [{"type": "text", "text": "(earlier conversation omitted)"}]})

    return "\n\n".join(system_parts), out


def _history_tools(anthropic_messages: list[dict], exclude: str = "") -> list[dict]:
    """Declarations for every tool named by a tool_use block in the window.

    The API rejects tool_use/tool_result blocks unless the request defines tools.
    """
    names: list[str] = []
    for message in anthropic_messages:
        for block in message["content"]:
            if block["type"] == "tool_use" and block["name"] != exclude and block["name"] not in names:
                names.append(block["name"])
    return [
        {
            "name": name,
            "description": f"Tool {name} used earlier in this conversation.",
            "input_schema": {"type": "object"},
        }
        for name in names
    ]


def _usage(response) -> ModelUsage:
    usage = response.usage
    return ModelUsage(
        prompt_tokens=usage.input_tokens,
        completion_tokens=usage.output_tokens,
        total_tokens=usage.input_tokens + usage.output_tokens,
    )


class AnthropicProvider:
    def __init__(self, api_key: str):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    async def _create(self, **kwargs):
        try:
            return await self._client.messages.create(**kwargs)
        except anthropic.RateLimitError as ex:
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
        system, anthropic_messages = _to_anthropic_messages(system_prompt, messages)
        logger.debug(f"API request: model={model}, max_tokens={max_tokens}, messages={len(anthropic_messages)}")
        request = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
            "messages": anthropic_messages,
        }
        tools = _history_tools(anthropic_messages)
        if tools:
            request["tools"] = tools
            request["tool_choice"] = {"type": "none"}
        response = await self._create(**request)
        usage = _usage(response)
        logger.debug(
            f"API response: stop_reason={response.stop_reason}, "
            f"input_tokens={usage.prompt_tokens}, output_tokens={usage.completion_tokens}"
        )
        text = "".join(block.text for block in response.content if block.type == "text")
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
        system, anthropic_messages = _to_anthropic_messages(system_prompt, messages)
        name = schema_name(schema)
        logger.debug(
            f"API request: model={model}, max_tokens={max_tokens}, "
            f"messages={len(anthropic_messages)}, schema={name}"
        )
        response = await self._create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=anthropic_messages,
            tools=[
                {
                    "name": name,
                    "description": f"Respond with a {name} object.",
                    "input_schema": schema.model_json_schema(),
                },
                *_history_tools(anthropic_messages, exclude=name),
            ],
            tool_choice={"type": "tool", "name": name},
        )
        usage = _usage(response)
        logger.debug(
            f"API response: stop_reason={response.stop_reason}, "
            f"input_tokens={usage.prompt_tokens}, output_tokens={usage.completion_tokens}"
        )
        tool_input = next((block.input for block in response.content if block.type == "tool_use"), None)
        if tool_input is None:
            raise GenerationError(f"Model returned no {name} object", usage)
        try:
            obj = schema.model_validate(tool_input)
        except ValidationError as ex:
            logger.warning(f"Response did not match {name}: {str(tool_input)[:200]}")
            raise GenerationError(f"Response did not match {name}: {ex}", usage) from ex
        return Generation(text=json.dumps(obj.model_dump(mode="json")), object=obj, usage=usage)
