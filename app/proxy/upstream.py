from __future__ import annotations

from typing import Any

import httpx


class UpstreamClient:
    """OpenAI-compatible generation service client. Callers send masked text only."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"authorization": f"Bearer {self._api_key}"}

    async def chat_completions(self, payload: dict[str, Any]) -> tuple[int, Any]:
        response = await self._client.post(
            f"{self._base_url}/v1/chat/completions",
            json=payload,
            headers=self._headers(),
        )
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.status_code, response.json()
            except ValueError as exc:
                return response.status_code, _error_body(f"invalid JSON body: {exc}", response.status_code)
        return response.status_code, _error_body(response.text, response.status_code)


def _error_body(message: str, status_code: int) -> dict[str, Any]:
    return {
        "error": {
            "message": message,
            "type": "upstream_error",
            "status_code": status_code,
        }
    }


def first_choice(body: Any) -> tuple[str, str | None] | None:
    """Return (content, finish_reason) of the first completion choice, or None if there is none."""
    if not isinstance(body, dict):
        return None
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    choice = choices[0]
    finish_reason = choice.get("finish_reason")
    message = choice.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        return content, finish_reason
    if isinstance(content, list):
        parts = [
            part["text"]
            for part in content
            if isinstance(part, dict) and part.get("type", "text") == "text" and isinstance(part.get("text"), str)
        ]
        return "".join(parts), finish_reason
    return None
