"""Client for the OpenAI-compatible AI gateway (JSON and SSE)."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from copydesk import errors, metrics
from copydesk.settings import Settings

logger = structlog.get_logger(__name__)

Message = dict[str, str]


@dataclass(slots=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> Usage:
        if not isinstance(data, dict):
            return cls()
        return cls(
            prompt_tokens=int(data.get("prompt_tokens") or 0),
            completion_tokens=int(data.get("completion_tokens") or 0),
            total_tokens=int(data.get("total_tokens") or 0),
        )

    def asdict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(slots=True)
class Completion:
    content: str
    tool_arguments: str | None
    usage: Usage = field(default_factory=Usage)
    model: str | None = None

    def tool_payload(self) -> Any:
        """Decoded function-call arguments; raises ``ValueError`` when absent or malformed."""
        if not self.tool_arguments:
            raise ValueError("response has no tool call")
        return json.loads(self.tool_arguments)


@dataclass(slots=True)
class StreamChunk:
    delta: str | None = None
    usage: Usage | None = None


def error_for_status(status_code: int, body: str = "") -> errors.ServiceError:
    if status_code == 429:
        return errors.rate_limit_exceeded()
    if status_code == 402:
        return errors.gateway_credits_required()
    return errors.gateway_error(f"AI gateway error: {status_code} {body[:200]}".strip())


def parse_sse_line(line: str) -> StreamChunk | None:
    """Decode one ``data:`` line of the provider stream.

    Comments, keep-alives, ``[DONE]`` and partial JSON are skipped.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None
    data = line[5:].strip()
    if not data or data == "[DONE]":
        return None
    try:
        payload = json.loads(data)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None

    delta = None
    choices = payload.get("choices") or []
    if choices and isinstance(choices[0], dict):
        delta = (choices[0].get("delta") or {}).get("content") or None
    usage = Usage.from_dict(payload["usage"]) if payload.get("usage") else None
    if delta is None and usage is None:
        return None
    return StreamChunk(delta=delta, usage=usage)


class GatewayStream:
    """An open streaming response; holds a concurrency slot until closed."""

    def __init__(self, response: httpx.Response, release: Any) -> None:
        self._response = response
        self._release = release
        self._closed = False

    async def chunks(self) -> AsyncIterator[StreamChunk]:
        try:
            async for line in self._response.aiter_lines():
                chunk = parse_sse_line(line)
                if chunk is not None:
                    yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            self._release()


class AIGateway:
    """Async client for ``/v1/chat/completions`` with bounded concurrency."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_ai_requests)

    @property
    def model(self) -> str:
        return self.settings.ai_model

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.ai_timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.ai_gateway_api_key}",
            "Content-Type": "application/json",
        }

    def _payload(
        self,
        messages: Sequence[Message],
        *,
        stream: bool,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: dict[str, Any] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.settings.ai_model,
            "messages": list(messages),
            "temperature": self.settings.ai_temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.settings.ai_max_tokens,
        }
        if stream:
            payload["stream"] = True
        if tools:
            payload["tools"] = tools
        if tool_choice:
            payload["tool_choice"] = tool_choice
        return payload

    def _fail(
        self, operation: str, error: errors.ServiceError, /, **fields: Any
    ) -> errors.ServiceError:
        metrics.observe_gateway_error(error.code)
        logger.error("gateway_error", operation=operation, code=error.code, **fields)
        return error

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        operation: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: dict[str, Any] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Run a non-streaming completion, retrying transport errors and 5xx responses."""
        payload = self._payload(
            messages,
            stream=False,
            tools=tools,
            tool_choice=tool_choice,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        client = self._get_client()
        attempts = self.settings.ai_max_retries + 1
        response: httpx.Response | None = None

        async with self._semaphore:
            started = time.perf_counter()
            for attempt in range(attempts):
                try:
                    response = await client.post(
                        self.settings.ai_gateway_url, json=payload, headers=self._headers()
                    )
                except httpx.TimeoutException as exc:
                    if attempt + 1 >= attempts:
                        raise self._fail(
                            operation, errors.gateway_error("AI gateway timeout"), error=str(exc)
                        ) from exc
                    logger.warning("gateway_retry", operation=operation, attempt=attempt + 1)
                except httpx.HTTPError as exc:
                    if attempt + 1 >= attempts:
                        failure = errors.gateway_error(str(exc) or "AI gateway unreachable")
                        raise self._fail(operation, failure, error=str(exc)) from exc
                    logger.warning("gateway_retry", operation=operation, attempt=attempt + 1)
                else:
                    if response.status_code < 500 or attempt + 1 >= attempts:
                        break
                    logger.warning(
                        "gateway_retry",
                        operation=operation,
                        attempt=attempt + 1,
                        status_code=response.status_code,
                    )
                await asyncio.sleep(0.5 * (attempt + 1))
            latency_ms = (time.perf_counter() - started) * 1000.0

        assert response is not None
        metrics.observe_gateway_call(operation=operation, mode="json", latency_ms=latency_ms)
        if response.status_code >= 400:
            raise self._fail(
                operation,
                error_for_status(response.status_code, response.text),
                status_code=response.status_code,
            )

        try:
            data = response.json()
            message = data["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise self._fail(
                operation, errors.gateway_error("Resposta da IA vazia ou inválida")
            ) from exc

        arguments = None
        tool_calls = message.get("tool_calls") or []
        if tool_calls:
            arguments = (tool_calls[0].get("function") or {}).get("arguments")

        completion = Completion(
            content=message.get("content") or "",
            tool_arguments=arguments,
            usage=Usage.from_dict(data.get("usage")),
            model=data.get("model") or self.settings.ai_model,
        )
        logger.info(
            "gateway_completed",
            operation=operation,
            latency_ms=round(latency_ms, 2),
            total_tokens=completion.usage.total_tokens,
            tool_call=arguments is not None,
        )
        return completion

    async def open_stream(
        self,
        messages: Sequence[Message],
        *,
        operation: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GatewayStream:
        """Start a streaming completion.

        Gateway errors are raised here, before any byte reaches the caller, so
        they can still be rendered as JSON error envelopes.
        """
        payload = self._payload(
            messages, stream=True, temperature=temperature, max_tokens=max_tokens
        )
        client = self._get_client()
        await self._semaphore.acquire()
        started = time.perf_counter()
        try:
            request = client.build_request(
                "POST", self.settings.ai_gateway_url, json=payload, headers=self._headers()
            )
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            self._semaphore.release()
            failure = errors.gateway_error(str(exc) or "AI gateway unreachable")
            raise self._fail(operation, failure, error=str(exc)) from exc

        metrics.observe_gateway_call(
            operation=operation,
            mode="stream",
            latency_ms=(time.perf_counter() - started) * 1000.0,
        )
        if response.status_code >= 400:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            finally:
                await response.aclose()
                self._semaphore.release()
            raise self._fail(
                operation,
                error_for_status(response.status_code, body),
                status_code=response.status_code,
            )
        return GatewayStream(response, self._semaphore.release)
