"""Anthropic / Claude provider.

Structured output is requested through a single forced tool call whose
``input_schema`` is the caller's JSON schema; the tool input is returned as
JSON text so callers parse every provider the same way.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any

import httpx

from .base import BaseProvider, ImageInput, ProviderError, ProviderResult

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"


class ClaudeProvider(BaseProvider):
    name = "claude"

    def __init__(self, api_key: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_key = api_key
        self._transport = transport

    def build_payload(
        self,
        prompt: str,
        *,
        image: ImageInput | None,
        json_schema: dict[str, Any] | None,
        schema_name: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        content: list[dict[str, Any]] = []
        if image is not None:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image.media_type,
                        "data": base64.b64encode(image.data).decode("ascii"),
                    },
                }
            )
        content.append({"type": "text", "text": prompt})

        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if json_schema is not None:
            payload["tools"] = [
                {
                    "name": schema_name,
                    "description": "Record the result in the required structure.",
                    "input_schema": json_schema,
                }
            ]
            payload["tool_choice"] = {"type": "tool", "name": schema_name}
        return payload

    async def generate(
        self,
        prompt: str,
        *,
        image: ImageInput | None = None,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "Result",
        model: str = "",
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout_seconds: float = 8.0,
    ) -> ProviderResult:
        model = model or "claude-sonnet-4-20250514"
        t0 = time.monotonic()

        payload = self.build_payload(
            prompt,
            image=image,
            json_schema=json_schema,
            schema_name=schema_name,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
            resp = await client.post(
                ANTHROPIC_MESSAGES_URL,
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": "2023-06-01",
                    "content-type": "application/json",
                },
                json=payload,
            )
            if resp.is_error:
                raise ProviderError(self.name, resp.status_code, resp.text)
            data = resp.json()

        elapsed = (time.monotonic() - t0) * 1000
        text = ""
        for block in data.get("content", []):
            if block.get("type") == "tool_use":
                text = json.dumps(block.get("input", {}))
                break
            if block.get("type") == "text" and not text:
                text = block.get("text", "")
        usage = data.get("usage", {})

        return ProviderResult(
            raw_text=text,
            model=data.get("model", model),
            provider=self.name,
            prompt_tokens=usage.get("input_tokens", 0),
            completion_tokens=usage.get("output_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
