"""Full copy generation via the ``generate_copy_structure`` function call."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from copydesk import errors
from copydesk.gateway import AIGateway
from copydesk.lists import sanitize_list_content
from copydesk.platforms import build_platform_constraint
from copydesk.prompts import PromptBuilder, prompt_key_for_copy_type
from copydesk.services import as_list, best_effort
from copydesk.store import SupabaseStore
from copydesk.tools import COPY_STRUCTURE_TOOL, copy_structure_tool, forced_choice

logger = structlog.get_logger(__name__)

UNSPECIFIED = "não especificado"

USER_PROMPT_INSTRUCTIONS = """INSTRUÇÕES IMPORTANTES:
- **SELEÇÃO INTELIGENTE DE BLOCOS**: Analise o tipo de copy, objetivo e contexto para escolher APENAS os blocos necessários
- Use "headline" para títulos principais (texto curto e impactante)
- Use "subheadline" SOMENTE se o headline precisar de complementação importante
- Use "text" para parágrafos de desenvolvimento (pode ter vários parágrafos)
- Use "list" SOMENTE quando houver itens que realmente precisem ser listados (content DEVE ser array de strings)
- Use "button" SOMENTE quando houver uma ação clara e específica (incluir link no config.link)
- Cada sessão deve ter um título descritivo e APENAS os blocos relevantes
- NÃO force o uso de todos os tipos de blocos - qualidade > quantidade

EXEMPLOS DE USO CORRETO:
- Anúncio simples: headline + text + button (3 blocos)
- Mensagem WhatsApp: text apenas (1 bloco)
- Landing page: headline + subheadline + text + list + button (5+ blocos)

FORMATO DE CONFIG:
- fontSize: "text-sm", "text-base", "text-lg", "text-xl", "text-2xl", "text-3xl", "text-4xl"
- textAlign: "left", "center", "right", "justify"
- fontWeight: "font-normal", "font-medium", "font-semibold", "font-bold"
- listStyle: "bullets" ou "numbers"
- buttonSize: "sm", "md", "lg"
"""


@dataclass(slots=True)
class GenerateCopyRequest:
    prompt: str
    copy_type: str = "outro"
    objectives: list[str] = field(default_factory=list)
    styles: list[str] = field(default_factory=list)
    size: str | None = None
    preferences: list[str] = field(default_factory=list)
    project_identity: dict[str, Any] | None = None
    audience_segment: dict[str, Any] | None = None
    offer: dict[str, Any] | None = None
    copy_id: str | None = None
    workspace_id: str | None = None
    platform: str | None = None


def _joined(values: Any) -> str:
    items = [str(value) for value in as_list(values) if value]
    return ", ".join(items) if items else UNSPECIFIED


def _value(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return str(value) if value not in (None, "") else UNSPECIFIED


def build_user_prompt(request: GenerateCopyRequest) -> str:
    sections = ["Crie uma copy em português brasileiro com as seguintes características:"]
    identity = request.project_identity
    if identity:
        sections.append(
            "**IDENTIDADE DO PROJETO:**\n"
            f"- Nome da Marca: {_value(identity, 'brand_name')}\n"
            f"- Setor: {_value(identity, 'sector')}\n"
            f"- Propósito Central: {_value(identity, 'central_purpose')}\n"
            f"- Tons de Voz: {_joined(identity.get('voice_tones'))}\n"
            f"- Personalidade da Marca: {_joined(identity.get('brand_personality'))}\n"
            f"- Palavras-chave: {_joined(identity.get('keywords'))}"
        )
    audience = request.audience_segment
    if audience:
        sections.append(
            "**PÚBLICO-ALVO:**\n"
            f"- Nome: {_value(audience, 'name')}\n"
            f"- Avatar: {_value(audience, 'avatar')}\n"
            f"- Segmento: {_value(audience, 'segment')}\n"
            f"- Situação Atual: {_value(audience, 'current_situation')}\n"
            f"- Resultado Desejado: {_value(audience, 'desired_result')}\n"
            f"- Nível de Consciência: {_value(audience, 'awareness_level')}\n"
            f"- Objeções: {_joined(audience.get('objections'))}\n"
            f"- Tom de Comunicação: {_value(audience, 'communication_tone')}"
        )
    offer = request.offer
    if offer:
        sections.append(
            "**OFERTA:**\n"
            f"- Nome: {_value(offer, 'name')}\n"
            f"- Tipo: {_value(offer, 'type')}\n"
            f"- Descrição: {_value(offer, 'short_description')}\n"
            f"- Benefício Principal: {_value(offer, 'main_benefit')}\n"
            f"- Mecanismo Único: {_value(offer, 'unique_mechanism')}\n"
            f"- Diferenciais: {_joined(offer.get('differentials'))}\n"
            f"- Prova: {_value(offer, 'proof')}\n"
            f"- Garantia: {_value(offer, 'guarantee')}\n"
            f"- CTA: {_value(offer, 'cta')}"
        )
    sections.append(
        "**PARÂMETROS DA COPY:**\n"
        f"- Objetivos: {_joined(request.objectives)}\n"
        f"- Estilo de Escrita: {_joined(request.styles)}\n"
        f"- Tamanho: {request.size or UNSPECIFIED}\n"
        f"- Preferências: {_joined(request.preferences)}"
    )
    sections.append(f"**DETALHES DA COPY:**\n{request.prompt}")
    sections.append(USER_PROMPT_INSTRUCTIONS)
    return "\n\n".join(sections)


def attach_ids(sessions: Any, *, timestamp: int) -> list[dict[str, Any]]:
    """Give every session and block a stable id and sanitize list content."""
    result: list[dict[str, Any]] = []
    for session_index, session in enumerate(as_list(sessions)):
        if not isinstance(session, dict):
            continue
        blocks: list[dict[str, Any]] = []
        for block_index, block in enumerate(as_list(session.get("blocks"))):
            if not isinstance(block, dict):
                continue
            block = {**block, "config": block.get("config") or {}}
            if block.get("type") == "list":
                block["content"] = sanitize_list_content(block.get("content"))
            block["id"] = f"ai-block-{timestamp}-{session_index}-{block_index}"
            blocks.append(block)
        result.append(
            {
                **session,
                "id": f"ai-session-{timestamp}-{session_index}",
                "blocks": blocks,
            }
        )
    return result


class GenerationService:
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

    async def system_prompt(self, copy_type: str, platform: str | None) -> str:
        key = prompt_key_for_copy_type(copy_type)
        row = await best_effort("read_prompt_template", self.store.get_prompt_template, key)
        if row and row.get("current_prompt"):
            prompt = str(row["current_prompt"])
        else:
            prompt = self.prompts.fallback("generate_copy_base")
            if key != "generate_copy_base":
                prompt = f"{prompt}\n\n{self.prompts.fallback(key)}"
        return prompt + build_platform_constraint(platform)

    async def generate(self, request: GenerateCopyRequest, *, user_id: str) -> dict[str, Any]:
        if not (request.prompt or "").strip():
            raise errors.invalid_request("prompt é obrigatório")

        system_prompt = await self.system_prompt(request.copy_type, request.platform)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": build_user_prompt(request)},
        ]
        completion = await self.gateway.complete(
            messages,
            operation="generate_copy",
            tools=[copy_structure_tool()],
            tool_choice=forced_choice(COPY_STRUCTURE_TOOL),
        )
        try:
            payload = completion.tool_payload()
            raw_sessions = payload["sessions"]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("copy_structure_invalid", error=str(exc))
            raise errors.gateway_error("Formato de resposta inválido") from exc

        sessions = attach_ids(raw_sessions, timestamp=int(time.time() * 1000))
        logger.info(
            "copy_generated",
            user_id=user_id,
            copy_type=request.copy_type,
            session_count=len(sessions),
            total_tokens=completion.usage.total_tokens,
        )

        if request.copy_id and request.workspace_id:
            await best_effort(
                "save_generation_history",
                self.store.insert_generation_history,
                {
                    "copy_id": request.copy_id,
                    "workspace_id": request.workspace_id,
                    "copy_type": request.copy_type,
                    "prompt": request.prompt,
                    "parameters": {
                        "objectives": request.objectives,
                        "styles": request.styles,
                        "size": request.size or "",
                        "preferences": request.preferences,
                        "hasProjectIdentity": bool(request.project_identity),
                        "hasAudienceSegment": bool(request.audience_segment),
                        "hasOffer": bool(request.offer),
                    },
                    "project_identity": request.project_identity,
                    "audience_segment": request.audience_segment,
                    "offer": request.offer,
                    "sessions": sessions,
                    "generation_type": "create",
                    "model_used": completion.model,
                },
            )
        return {"sessions": sessions}
