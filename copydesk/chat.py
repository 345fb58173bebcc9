"""Copy chat: context resolution, intent routing and the two response modes.

``insert`` and ``replace`` requests are answered with a forced function call
returning ``{blocks: [{title, content}]}``; ``conversational`` and ``default``
requests stream provider deltas back as server-sent events.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from copydesk import errors, metrics
from copydesk.context import build_copy_context, build_generation_history_context
from copydesk.gateway import AIGateway, Completion, Message, Usage
from copydesk.intent import detect_requested_count, detect_user_intent
from copydesk.models import Intent, ParsedContent, ParsedMessage
from copydesk.parser import clean_content
from copydesk.prompts import (
    ChatPromptInputs,
    PromptBuilder,
    count_selected_elements,
    prompt_key_for_copy_type,
    split_selection,
    sub_prompt_key,
)
from copydesk.segmenters.common import infer_block_type
from copydesk.services import Caller, as_list, best_effort, run_blocking, sse_event
from copydesk.sessions import convert_parsed_blocks_to_sessions
from copydesk.settings import Settings
from copydesk.store import SupabaseStore
from copydesk.tools import CHAT_BLOCKS_TOOL, chat_blocks_tool, forced_choice
from copydesk.variables import VariableContext, VariableResolution, resolve_variables

logger = structlog.get_logger(__name__)

STRUCTURED_INTENTS: frozenset[str] = frozenset({"insert", "replace"})
FALLBACK_BLOCK_TITLE = "Resposta da IA"
PROJECT_IDENTITY_FIELDS = (
    "brand_name",
    "sector",
    "central_purpose",
    "brand_personality",
    "voice_tones",
    "keywords",
)


@dataclass(slots=True)
class ChatRequest:
    copy_id: str
    message: str
    has_selection: bool = False
    platform: str | None = None


@dataclass(slots=True)
class ChatTurn:
    """Everything resolved before the gateway is called."""

    copy: dict[str, Any]
    workspace_id: str | None
    user_id: str
    clean_message: str
    intent: Intent
    requested_count: int | None
    variables: VariableResolution
    system_prompt: str
    messages: list[Message] = field(default_factory=list)

    @property
    def structured(self) -> bool:
        return self.intent in STRUCTURED_INTENTS


def _find_by_id(items: Any, item_id: Any) -> dict[str, Any] | None:
    for item in as_list(items):
        if isinstance(item, dict) and item.get("id") == item_id:
            return item
    return None


def resolve_project_context(
    copy: dict[str, Any], project: dict[str, Any] | None
) -> VariableContext:
    """Pick the identity, audience, offer and methodology selected on the copy.

    A project with exactly one methodology uses it even without an explicit
    selection.
    """
    if not project:
        return VariableContext()

    identity = {name: project.get(name) for name in PROJECT_IDENTITY_FIELDS}
    audience = None
    if copy.get("selected_audience_id"):
        audience = _find_by_id(project.get("audience_segments"), copy["selected_audience_id"])
    offer = None
    if copy.get("selected_offer_id"):
        offer = _find_by_id(project.get("offers"), copy["selected_offer_id"])

    raw_methodology = project.get("methodology")
    if isinstance(raw_methodology, list):
        methodologies = raw_methodology
    elif raw_methodology:
        methodologies = [raw_methodology]
    else:
        methodologies = []
    methodology = None
    if copy.get("selected_methodology_id"):
        methodology = _find_by_id(methodologies, copy["selected_methodology_id"])
        if methodology is None:
            logger.warning(
                "methodology_not_found", methodology_id=copy["selected_methodology_id"]
            )
    elif len(methodologies) == 1 and isinstance(methodologies[0], dict):
        methodology = methodologies[0]

    return VariableContext(
        project_identity=identity,
        audience_segment=audience,
        offer=offer,
        methodology=methodology,
    )


def blocks_from_arguments(completion: Completion) -> list[dict[str, str]]:
    """Decode ``{blocks: [...]}``; malformed arguments become one raw block."""
    try:
        payload = completion.tool_payload()
        items = payload["blocks"]
        blocks = [
            {"title": str(item.get("title") or ""), "content": str(item.get("content") or "")}
            for item in items
            if isinstance(item, dict)
        ]
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.warning("tool_arguments_unparseable", error=str(exc))
        raw = completion.content or completion.tool_arguments or ""
        return [{"title": FALLBACK_BLOCK_TITLE, "content": raw}] if raw.strip() else []
    return [block for block in blocks if block["content"].strip()]


def compose_blocks(blocks: list[dict[str, str]]) -> tuple[str, ParsedMessage]:
    """Render function-call blocks as ``###`` markdown with matching parsed blocks."""
    parts: list[str] = []
    parsed: list[ParsedContent] = []
    offset = 0
    for block in blocks:
        section = block["content"]
        if block["title"]:
            section = f"### {block['title']}\n{block['content']}"
        if parts:
            offset += 2
        parsed.append(
            ParsedContent(
                type=infer_block_type(block["content"], block["title"]),
                title=block["title"] or None,
                content=clean_content(block["content"]),
                raw_content=section,
                start_index=offset,
                end_index=offset + len(section),
            )
        )
        parts.append(section)
        offset += len(section)
    message = ParsedMessage(
        has_actionable_content=bool(parsed), blocks=parsed, strategy="function_call"
    )
    return "\n\n".join(parts), message


class ChatService:
    def __init__(
        self,
        *,
        settings: Settings,
        store: SupabaseStore,
        gateway: AIGateway,
        prompts: PromptBuilder,
    ) -> None:
        self.settings = settings
        self.store = store
        self.gateway = gateway
        self.prompts = prompts

    async def _check_credits(self, workspace_id: str | None) -> None:
        try:
            result = await run_blocking(
                self.store.check_credits,
                workspace_id,
                estimated_tokens=self.settings.credit_estimate_tokens,
                model=self.gateway.model,
            )
        except Exception as exc:  # rpc transport or postgrest failure
            logger.error("credit_check_failed", workspace_id=workspace_id, error=str(exc))
            raise errors.credit_check_failed() from exc
        if not result.get("has_sufficient_credits"):
            logger.info("insufficient_credits", workspace_id=workspace_id)
            raise errors.insufficient_credits(
                current_balance=result.get("current_balance"),
                estimated_debit=result.get("estimated_debit"),
            )

    async def _template_prompt(self, prompt_key: str) -> dict[str, Any] | None:
        return await best_effort(
            "read_prompt_template", self.store.get_prompt_template, prompt_key
        )

    async def prepare(self, request: ChatRequest, caller: Caller) -> ChatTurn:
        if not request.copy_id or not (request.message or "").strip():
            raise errors.invalid_request("copyId e message são obrigatórios")

        clean_message, selection_context = split_selection(request.message)
        copy = await run_blocking(self.store.get_copy, request.copy_id, token=caller.token)
        if not copy:
            raise errors.copy_not_found()
        workspace_id = copy.get("workspace_id")

        project = None
        if copy.get("project_id"):
            project = await run_blocking(
                self.store.get_project, copy["project_id"], token=caller.token
            )
        variable_context = resolve_project_context(copy, project)

        history = await best_effort(
            "read_generation_history",
            self.store.list_generation_history,
            request.copy_id,
            token=caller.token,
            limit=self.settings.generation_history_limit,
            default=[],
        )

        await self._check_credits(workspace_id)

        chat_history = await best_effort(
            "read_chat_messages",
            self.store.list_chat_messages,
            request.copy_id,
            token=caller.token,
            limit=self.settings.chat_history_limit,
            default=[],
        )

        intent = detect_user_intent(clean_message, request.has_selection)
        metrics.observe_chat_intent(intent)
        requested_count = detect_requested_count(clean_message)
        selected_count = (
            count_selected_elements(selection_context) if request.has_selection else 0
        )
        variables = resolve_variables(request.message, variable_context)

        system_instruction = copy.get("system_instruction")
        template = None
        if not system_instruction:
            template_key = prompt_key_for_copy_type(copy.get("copy_type"))
            template = await self._template_prompt(template_key)
        sub_prompt = None
        key = sub_prompt_key(intent, request.has_selection)
        if key is not None:
            row = await self._template_prompt(key)
            sub_prompt = (row or {}).get("current_prompt")

        system_prompt = self.prompts.build_chat_system_prompt(
            ChatPromptInputs(
                intent=intent,
                copy_type=copy.get("copy_type") or "outro",
                copy_context=build_copy_context(copy),
                history_context=build_generation_history_context(history or []),
                system_instruction=system_instruction,
                template=template,
                project_identity=variable_context.project_identity,
                audience_segment=variable_context.audience_segment,
                offer=variable_context.offer,
                methodology=variable_context.methodology,
                variable_context_text=variables.context_text,
                has_selection=request.has_selection,
                selection_context=selection_context,
                selected_count=selected_count,
                requested_count=requested_count,
                sub_prompt=sub_prompt,
                platform=request.platform,
            )
        )

        messages: list[Message] = [{"role": "system", "content": system_prompt}]
        for row in chat_history or []:
            if row.get("role") in ("user", "assistant") and row.get("content"):
                messages.append({"role": row["role"], "content": str(row["content"])})
        messages.append({"role": "user", "content": variables.enhanced_message})

        logger.info(
            "chat_prepared",
            copy_id=request.copy_id,
            intent=intent,
            requested_count=requested_count,
            selected_count=selected_count,
            inherited_prompt=bool(system_instruction),
            prompt_chars=len(system_prompt),
            message_count=len(messages),
            missing_variables=len(variables.missing),
        )
        return ChatTurn(
            copy=copy,
            workspace_id=workspace_id,
            user_id=caller.user_id,
            clean_message=clean_message,
            intent=intent,
            requested_count=requested_count,
            variables=variables,
            system_prompt=system_prompt,
            messages=messages,
        )

    async def _persist(
        self, turn: ChatTurn, reply: str, usage: Usage, metadata: dict[str, Any]
    ) -> None:
        base = {
            "copy_id": turn.copy.get("id"),
            "workspace_id": turn.workspace_id,
            "user_id": turn.user_id,
        }
        await best_effort(
            "save_user_message",
            self.store.insert_chat_message,
            {**base, "role": "user", "content": turn.clean_message},
        )
        await best_effort(
            "save_assistant_message",
            self.store.insert_chat_message,
            {**base, "role": "assistant", "content": reply, "metadata": metadata},
        )
        if usage.total_tokens > 0:
            await best_effort(
                "debit_credits",
                self.store.debit_credits,
                turn.workspace_id,
                model=self.gateway.model,
                total_tokens=usage.total_tokens,
                input_tokens=usage.prompt_tokens,
                output_tokens=usage.completion_tokens,
                user_id=turn.user_id,
            )

    async def respond_structured(self, turn: ChatTurn) -> dict[str, Any]:
        completion = await self.gateway.complete(
            turn.messages,
            operation="copy_chat",
            tools=[chat_blocks_tool(turn.requested_count)],
            tool_choice=forced_choice(CHAT_BLOCKS_TOOL),
        )
        blocks = blocks_from_arguments(completion)
        message, parsed = compose_blocks(blocks)
        await self._persist(
            turn, message, completion.usage, {"intent": turn.intent, "blocks": blocks}
        )
        logger.info("chat_structured_reply", intent=turn.intent, block_count=len(blocks))
        return {
            "message": message,
            "blocks": blocks,
            "parsed": parsed.asdict(),
            "sessions": [
                session.asdict() for session in convert_parsed_blocks_to_sessions(parsed.blocks)
            ],
            "tokens": completion.usage.asdict(),
            "intent": turn.intent,
            "actionable": True,
            "missingVariables": turn.variables.missing,
        }

    async def respond_stream(self, turn: ChatTurn) -> AsyncIterator[str]:
        """Open the provider stream now; return the SSE event iterator."""
        stream = await self.gateway.open_stream(turn.messages, operation="copy_chat")

        async def events() -> AsyncIterator[str]:
            full_message = ""
            usage = Usage()
            try:
                async for chunk in stream.chunks():
                    if chunk.delta:
                        full_message += chunk.delta
                        yield sse_event({"delta": chunk.delta})
                    if chunk.usage is not None:
                        usage = chunk.usage
            except httpx.HTTPError as exc:
                logger.error("chat_stream_failed", error=str(exc))
                yield sse_event({"error": "Erro durante streaming"})
                return
            finally:
                await stream.aclose()

            logger.info("chat_stream_completed", chars=len(full_message), intent=turn.intent)
            await self._persist(turn, full_message, usage, {"intent": turn.intent})
            yield sse_event(
                {
                    "done": True,
                    "message": full_message,
                    "tokens": usage.asdict(),
                    "intent": turn.intent,
                    "actionable": turn.intent != "conversational",
                    "missingVariables": turn.variables.missing,
                }
            )

        return events()
