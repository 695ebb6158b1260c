from __future__ import annotations

import time
import uuid
from typing import Any

from fastapi import FastAPI

# Stand-in generation service: drafts a reply using placeholders only and
# remembers every conversation it was shown.
app = FastAPI(title="mock-generation-service")

received: list[dict[str, Any]] = []


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/debug/received")
async def debug_received() -> dict[str, Any]:
    return {"payloads": received}


@app.post("/v1/chat/completions")
async def chat(payload: dict[str, Any]) -> dict[str, Any]:
    received.append(payload)

    prompt = ""
    messages = payload.get("messages", [])
    if isinstance(messages, list) and messages and isinstance(messages[-1], dict):
        prompt = str(messages[-1].get("content", ""))

    draft = f"Draft for [STUDENT_NAME]: [HE/SHE] reads well. Prompt was: {prompt}"
    return {
        "id": f"chatcmpl-{uuid.uuid4().hex[:12]}",
        "object": "chat.completion",
        "created": int(time.time()),
        "model": payload.get("model", "mock-model"),
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": draft},
                "finish_reason": "stop",
            }
        ],
    }
