"""Test doubles for the store and the AI gateway."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from copydesk.gateway import AIGateway
from copydesk.settings import Settings

REPO_ROOT = Path(__file__).resolve().parents[1]
VALID_TOKEN = "token-valido"
USER_ID = "user-1"
AUTH_HEADERS = {"Authorization": f"Bearer {VALID_TOKEN}"}


class FakeStore:
    """In-memory stand-in for ``SupabaseStore``."""

    def __init__(self) -> None:
        self.tokens: dict[str, str] = {VALID_TOKEN: USER_ID}
        self.copies: dict[str, dict[str, Any]] = {}
        self.projects: dict[str, dict[str, Any]] = {}
        self.generation_history: dict[str, list[dict[str, Any]]] = {}
        self.chat_messages: dict[str, list[dict[str, Any]]] = {}
        self.templates: dict[str, dict[str, Any]] = {}
        self.credits: dict[str, Any] = {
            "has_sufficient_credits": True,
            "current_balance": 100,
            "estimated_debit": 1,
        }
        self.credit_error: Exception | None = None
        self.fail_writes = False
        self.inserted_messages: list[dict[str, Any]] = []
        self.inserted_history: list[dict[str, Any]] = []
        self.debits: list[dict[str, Any]] = []

    def _write(self) -> None:
        if self.fail_writes:
            raise RuntimeError("database unavailable")

    def authenticate(self, token: str) -> str | None:
        return self.tokens.get(token)

    def get_copy(self, copy_id: str, *, token: str) -> dict[str, Any] | None:
        return self.copies.get(copy_id)

    def get_project(self, project_id: str, *, token: str) -> dict[str, Any] | None:
        return self.projects.get(project_id)

    def list_generation_history(
        self, copy_id: str, *, token: str, limit: int
    ) -> list[dict[str, Any]]:
        return self.generation_history.get(copy_id, [])[:limit]

    def list_chat_messages(self, copy_id: str, *, token: str, limit: int) -> list[dict[str, Any]]:
        return self.chat_messages.get(copy_id, [])[:limit]

    def insert_chat_message(self, row: dict[str, Any]) -> None:
        self._write()
        self.inserted_messages.append(row)

    def insert_generation_history(self, row: dict[str, Any]) -> None:
        self._write()
        self.inserted_history.append(row)

    def get_prompt_template(self, prompt_key: str) -> dict[str, Any] | None:
        return self.templates.get(prompt_key)

    def check_credits(
        self, workspace_id: str, *, estimated_tokens: int, model: str
    ) -> dict[str, Any]:
        if self.credit_error is not None:
            raise self.credit_error
        return dict(self.credits)

    def debit_credits(self, workspace_id: str, **kwargs: Any) -> dict[str, Any]:
        self._write()
        self.debits.append({"workspace_id": workspace_id, **kwargs})
        return {"debited": 3}


class RecordingGateway:
    """Builds an ``AIGateway`` over ``httpx.MockTransport`` and records requests."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.responder: Callable[[dict[str, Any]], httpx.Response] = lambda _: httpx.Response(
            500, json={"error": "no responder configured"}
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        return self.responder(payload)

    def build(self, settings: Settings) -> AIGateway:
        return AIGateway(settings, transport=httpx.MockTransport(self.handler))

    @property
    def last(self) -> dict[str, Any]:
        return self.requests[-1]


def tool_call_response(arguments: Any, *, usage: dict[str, int] | None = None) -> httpx.Response:
    encoded = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return httpx.Response(
        200,
        json={
            "model": "google/gemini-2.5-flash",
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call-1",
                                "type": "function",
                                "function": {"name": "tool", "arguments": encoded},
                            }
                        ],
                    }
                }
            ],
            "usage": usage
            or {"prompt_tokens": 120, "completion_tokens": 80, "total_tokens": 200},
        },
    )


def sse_response(deltas: list[str], *, usage: dict[str, int] | None = None) -> httpx.Response:
    lines = [": keep-alive"]
    for delta in deltas:
        lines.append("data: " + json.dumps({"choices": [{"delta": {"content": delta}}]}))
    if usage:
        lines.append("data: " + json.dumps({"choices": [], "usage": usage}))
    lines.append("data: [DONE]")
    body = "\n\n".join(lines) + "\n\n"
    return httpx.Response(
        200, content=body.encode("utf-8"), headers={"content-type": "text/event-stream"}
    )
