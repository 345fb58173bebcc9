"""Psychographic audience analysis."""

from __future__ import annotations

from typing import Any

import structlog

from copydesk import errors
from copydesk.gateway import AIGateway, Usage
from copydesk.prompts import PromptBuilder
from copydesk.services import best_effort, run_blocking
from copydesk.store import SupabaseStore
from copydesk.tools import AUDIENCE_ANALYSIS_TOOL, audience_analysis_tool, forced_choice

logger = structlog.get_logger(__name__)

PROMPT_KEY = "analyze_audience_base"

# Debited when the gateway omits usage.
DEFAULT_USAGE = Usage(prompt_tokens=2000, completion_tokens=3000, total_tokens=5000)

SEGMENT_FIELDS = (
    ("Quem é", "who_is"),
    ("Maior desejo", "biggest_desire"),
    ("Maior dor", "biggest_pain"),
    ("Tentativas falhas", "failed_attempts"),
    ("Crenças limitantes", "beliefs"),
    ("Comportamento", "behavior"),
    ("Jornada", "journey"),
)


def build_audience_prompt(segment: dict[str, Any]) -> str:
    lines = ["**DADOS DO PÚBLICO:**", ""]
    for index, (label, key) in enumerate(SEGMENT_FIELDS, start=1):
        value = segment.get(key)
        lines.append(f"{index}. **{label}:** {value if value not in (None, '') else '-'}")
    lines.extend(
        [
            "",
            "---",
            "",
            "Analise profundamente esse público do ponto de vista antropológico e psicológico.",
            "Seja específico, detalhado e focado em ENTENDER verdadeiramente quem é essa pessoa.",
        ]
    )
    return "\n".join(lines)


def _usage_or_default(usage: Usage) -> Usage:
    return Usage(
        prompt_tokens=usage.prompt_tokens or DEFAULT_USAGE.prompt_tokens,
        completion_tokens=usage.completion_tokens or DEFAULT_USAGE.completion_tokens,
        total_tokens=usage.total_tokens or DEFAULT_USAGE.total_tokens,
    )


class AudienceService:
    def __init__(
        self,
        *,
        store: SupabaseStore,
        gateway: AIGateway,
        prompts: PromptBuilder,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.prompts = prompts

    async def analyze(
        self, segment: Any, workspace_id: str | None, *, user_id: str
    ) -> dict[str, Any]:
        if not isinstance(segment, dict) or not segment or not workspace_id:
            raise errors.invalid_request("Segmento e workspace_id são obrigatórios")

        row = await best_effort("read_prompt_template", self.store.get_prompt_template, PROMPT_KEY)
        system_prompt = (row or {}).get("current_prompt") or self.prompts.fallback(PROMPT_KEY)

        completion = await self.gateway.complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": build_audience_prompt(segment)},
            ],
            operation="analyze_audience",
            tools=[audience_analysis_tool()],
            tool_choice=forced_choice(AUDIENCE_ANALYSIS_TOOL),
        )
        try:
            analysis = completion.tool_payload()
        except ValueError as exc:
            logger.error("audience_analysis_invalid", error=str(exc))
            raise errors.gateway_error("Resposta da IA vazia ou inválida") from exc
        if not isinstance(analysis, dict):
            raise errors.gateway_error("Resposta da IA vazia ou inválida")

        usage = _usage_or_default(completion.usage)
        try:
            debit = await run_blocking(
                self.store.debit_credits,
                workspace_id,
                model=self.gateway.model,
                total_tokens=usage.total_tokens,
                input_tokens=usage.prompt_tokens,
                output_tokens=usage.completion_tokens,
                user_id=user_id,
            )
        except Exception as exc:  # rpc transport or postgrest failure
            logger.error("credit_debit_failed", workspace_id=workspace_id, error=str(exc))
            raise errors.internal_error("Erro ao processar créditos") from exc

        logger.info(
            "audience_analyzed",
            workspace_id=workspace_id,
            total_tokens=usage.total_tokens,
            debited=debit.get("debited"),
        )
        return {
            "analysis": analysis,
            "tokens_used": usage.total_tokens,
            "credits_debited": debit.get("debited") or 0,
        }
