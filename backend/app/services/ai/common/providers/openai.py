"""OpenAI provider."""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

import httpx

from .base import BaseProvider, ImageInput, ProviderError, ProviderResult

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIProvider(BaseProvider):
    name = "openai"

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
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        if image is not None:
            encoded = base64.b64encode(image.data).decode("ascii")
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.media_type};base64,{encoded}"},
                }
            )

        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if json_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema, "strict": True},
            }
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
        model = model or "gpt-4.1"
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
                OPENAI_CHAT_URL,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            if resp.is_error:
                raise ProviderError(self.name, resp.status_code, resp.text)
            data = resp.json()

        elapsed = (time.monotonic() - t0) * 1000
        message = data["choices"][0]["message"]
        if message.get("refusal"):
            raise ProviderError(self.name, resp.status_code, f"refusal: {message['refusal']}")
        text = message.get("content") or ""
        usage = data.get("usage", {})

        return ProviderResult(
            raw_text=text,
            model=data.get("model", model),
            provider=self.name,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
