"""System prompt assembly for the copy chat.

Prompt text lives in two places: active rows of ``ai_prompt_templates``
(fetched by the services) and the fallback table in ``config/prompts.yaml``
(loaded here, cached by file mtime).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Any

import structlog
import yaml

from copydesk.context import copy_type_name
from copydesk.models import Intent
from copydesk.platforms import build_platform_constraint

logger = structlog.get_logger(__name__)

GENERIC_FALLBACK = "Você é um assistente útil."
SELECTION_MARKER = "**CONTEXTO DOS ELEMENTOS SELECIONADOS:**"
NOT_DEFINED = "Não definido"

COPY_TYPE_TO_PROMPT_KEY: dict[str, str] = {
    "anuncio": "generate_copy_ad",
    "landing_page": "generate_copy_landing_page",
    "vsl": "generate_copy_vsl",
    "email": "generate_copy_email",
    "webinar": "generate_copy_webinar",
    "conteudo": "generate_copy_content",
    "mensagem": "generate_copy_message",
    "outro": "generate_copy_base",
}

OPTIMIZE_PROMPT_KEY = "optimize_copy_otimizar"
VARIATION_PROMPT_KEY = "optimize_copy_variacao"

_SELECTED_BLOCK = re.compile(r"\d+\.\s+\*\*Bloco")
_SELECTED_SESSION = re.compile(r"\d+\.\s+\*\*Sessão")


@dataclass(slots=True)
class PromptConfig:
    fallbacks: dict[str, str] = field(default_factory=dict)
    formatting: dict[str, str] = field(default_factory=dict)
    intent_instructions: dict[str, str] = field(default_factory=dict)
    count_rules: dict[str, str] = field(default_factory=dict)
    version: int | None = None

    def fallback(self, key: str) -> str:
        return self.fallbacks.get(key) or GENERIC_FALLBACK


_PROMPT_CACHE: dict[Path, tuple[float, PromptConfig]] = {}
_PROMPT_LOCK = RLock()


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(key): str(text) for key, text in value.items() if isinstance(text, str)}


def load_prompt_config(path: Path, *, use_cache: bool = True) -> PromptConfig:
    """Load the fallback prompt table, reusing the cached copy while mtime is unchanged."""
    resolved = path.resolve()
    try:
        mtime = resolved.stat().st_mtime
    except FileNotFoundError:
        logger.warning("prompt_config_missing", path=str(resolved))
        with _PROMPT_LOCK:
            _PROMPT_CACHE.pop(resolved, None)
        return PromptConfig()

    if use_cache:
        with _PROMPT_LOCK:
            cached = _PROMPT_CACHE.get(resolved)
            if cached and cached[0] == mtime:
                return cached[1]

    content = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
    if not isinstance(content, dict):
        raise ValueError(f"Prompt config must be a mapping: {resolved}")

    config = PromptConfig(
        fallbacks=_string_map(content.get("fallbacks")),
        formatting=_string_map(content.get("formatting")),
        intent_instructions=_string_map(content.get("intent_instructions")),
        count_rules=_string_map(content.get("count_rules")),
        version=content.get("version"),
    )
    with _PROMPT_LOCK:
        _PROMPT_CACHE[resolved] = (mtime, config)
    logger.info("prompt_config_loaded", path=str(resolved), version=config.version)
    return config


def invalidate_prompt_cache(path: Path | None = None) -> None:
    with _PROMPT_LOCK:
        if path is None:
            _PROMPT_CACHE.clear()
        else:
            _PROMPT_CACHE.pop(path.resolve(), None)


def prompt_key_for_copy_type(copy_type: str | None) -> str:
    return COPY_TYPE_TO_PROMPT_KEY.get(copy_type or "", "generate_copy_base")


def sub_prompt_key(intent: Intent, has_selection: bool) -> str | None:
    """Optimize prompt for replacements, variation prompt for inserts on a selection."""
    if intent == "replace":
        return OPTIMIZE_PROMPT_KEY
    if intent == "insert" and has_selection:
        return VARIATION_PROMPT_KEY
    return None


def split_selection(message: str) -> tuple[str, str]:
    """Separate the visible message from the selection context appended by the editor."""
    if SELECTION_MARKER not in message:
        return message, ""
    visible, _, selection = message.partition(SELECTION_MARKER)
    return visible.strip(), SELECTION_MARKER + selection


def count_selected_elements(selection_context: str) -> int:
    if not selection_context:
        return 0
    return len(_SELECTED_BLOCK.findall(selection_context)) + len(
        _SELECTED_SESSION.findall(selection_context)
    )


def extract_instruction_text(instruction: Any) -> str:
    """Flatten a stored ``system_instruction`` (string, ``full_text`` or parts)."""
    if not instruction:
        return ""
    if isinstance(instruction, str):
        return instruction
    if isinstance(instruction, dict):
        if instruction.get("full_text"):
            return str(instruction["full_text"])
        if instruction.get("base_prompt"):
            parts = [str(instruction["base_prompt"])]
            for key in (
                "project_context",
                "audience_context",
                "offer_context",
                "methodology_context",
                "characteristics_context",
            ):
                if instruction.get(key):
                    parts.append(str(instruction[key]))
            return "\n\n".join(parts)
    return json.dumps(instruction, ensure_ascii=False)


def _join_or_default(value: Any) -> str:
    if isinstance(value, (list, tuple)) and value:
        return ", ".join(str(item) for item in value)
    if isinstance(value, str) and value:
        return value
    return NOT_DEFINED


def _field(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return str(value) if value not in (None, "") else NOT_DEFINED


def build_project_sections(
    *,
    project_identity: dict[str, Any] | None,
    audience_segment: dict[str, Any] | None,
    offer: dict[str, Any] | None,
    methodology: dict[str, Any] | None,
) -> str:
    sections: list[str] = []
    if project_identity:
        sections.append(
            "📊 CONTEXTO DO PROJETO:\n"
            f"• Marca: {_field(project_identity, 'brand_name')}\n"
            f"• Setor: {_field(project_identity, 'sector')}\n"
            f"• Propósito: {_field(project_identity, 'central_purpose')}\n"
            f"• Personalidade: {_join_or_default(project_identity.get('brand_personality'))}\n"
            f"• Tons de Voz: {_join_or_default(project_identity.get('voice_tones'))}"
        )
    if audience_segment:
        sections.append(
            "👥 PÚBLICO-ALVO:\n"
            f"• Persona: {_field(audience_segment, 'name')}\n"
            f"• Maior Desejo: {_field(audience_segment, 'biggest_desire')}\n"
            f"• Maior Medo: {_field(audience_segment, 'biggest_fear')}\n"
            f"• Principal Objeção: {_field(audience_segment, 'main_objection')}\n"
            f"• Nível de Consciência: {_field(audience_segment, 'awareness_level')}"
        )
    if offer:
        sections.append(
            "🎯 OFERTA:\n"
            f"• Nome: {_field(offer, 'name')}\n"
            f"• Descrição: {_field(offer, 'description')}\n"
            f"• Preço: {_field(offer, 'price')}\n"
            f"• Garantia: {_field(offer, 'guarantee')}"
        )
    if methodology:
        sections.append(
            "🧠 METODOLOGIA:\n"
            f"• Nome: {_field(methodology, 'name')}\n"
            f"• Descrição: {_field(methodology, 'description')}\n"
            f"• Diferencial: {_field(methodology, 'differentiator')}"
        )
    return "\n\n".join(sections)


@dataclass(slots=True)
class ChatPromptInputs:
    """Everything the chat system prompt is assembled from."""

    intent: Intent
    copy_type: str | None = None
    copy_context: str = ""
    history_context: str = ""
    system_instruction: Any = None
    template: dict[str, Any] | None = None
    project_identity: dict[str, Any] | None = None
    audience_segment: dict[str, Any] | None = None
    offer: dict[str, Any] | None = None
    methodology: dict[str, Any] | None = None
    variable_context_text: str = ""
    has_selection: bool = False
    selection_context: str = ""
    selected_count: int = 0
    requested_count: int | None = None
    sub_prompt: str | None = None
    platform: str | None = None


class PromptBuilder:
    """Builds layered system prompts from stored templates and the fallback table."""

    def __init__(self, prompts_path: Path) -> None:
        self.prompts_path = prompts_path

    @property
    def config(self) -> PromptConfig:
        return load_prompt_config(self.prompts_path)

    def fallback(self, key: str) -> str:
        return self.config.fallback(key)

    def _base_prompt(self, inputs: ChatPromptInputs) -> tuple[str, bool]:
        inherited = extract_instruction_text(inputs.system_instruction)
        if inherited:
            return inherited, True

        if inputs.template and inputs.template.get("current_prompt"):
            base = str(inputs.template["current_prompt"])
            if inputs.template.get("system_instructions"):
                base += "\n\n" + str(inputs.template["system_instructions"])
        else:
            config = self.config
            base = config.fallback("chat_base")
            type_prompt = config.fallbacks.get(prompt_key_for_copy_type(inputs.copy_type))
            if type_prompt:
                base += "\n\n" + type_prompt
        base += f"\n\n📌 TIPO DE COPY: {copy_type_name(inputs.copy_type).upper()}"
        return base, False

    def intent_instructions(self, inputs: ChatPromptInputs) -> str:
        config = self.config
        template = config.intent_instructions.get(inputs.intent, "")
        if not template:
            return ""
        if inputs.requested_count:
            rule = config.count_rules.get("exact", "")
            count = inputs.requested_count
        elif inputs.intent == "replace" and inputs.selected_count:
            rule = config.count_rules.get("selection", "")
            count = inputs.selected_count
        else:
            rule = config.count_rules.get("open", "")
            count = 0
        return template.replace("{count_rule}", rule.replace("{count}", str(count)))

    def build_chat_system_prompt(self, inputs: ChatPromptInputs) -> str:
        """Assemble the chat system prompt.

        Layers, in order: base prompt (inherited instruction, stored template
        or fallback, plus project sections when not inherited), current copy
        structure, generation history, resolved variables, selection focus,
        optimize/variation sub-prompt, formatting and intent instructions,
        and the platform constraint last.
        """
        base, inherited = self._base_prompt(inputs)
        layers = [base]
        if not inherited:
            project = build_project_sections(
                project_identity=inputs.project_identity,
                audience_segment=inputs.audience_segment,
                offer=inputs.offer,
                methodology=inputs.methodology,
            )
            if project:
                layers.append(project)

        layers.append(f"📋 ESTRUTURA ATUAL DA COPY:\n{inputs.copy_context}")
        layers.append(f"📚 HISTÓRICO RECENTE:\n{inputs.history_context}")

        if inputs.variable_context_text:
            layers.append(inputs.variable_context_text.strip())

        if inputs.has_selection:
            layers.append(
                "🎯 FOCO DA CONVERSA:\n"
                f"O usuário selecionou {inputs.selected_count} elemento(s) "
                "específico(s) para trabalhar.\n\n"
                f"{inputs.selection_context}\n\n"
                "IMPORTANTE: Foque sua resposta EXCLUSIVAMENTE nos elementos selecionados acima."
            )

        key = sub_prompt_key(inputs.intent, inputs.has_selection)
        if key is not None:
            layers.append(inputs.sub_prompt or self.fallback(key))

        formatting_key = (
            "conversational" if inputs.intent in ("conversational", "default") else "structured"
        )
        formatting = self.config.formatting.get(formatting_key)
        if formatting:
            layers.append(formatting)

        instructions = self.intent_instructions(inputs)
        if instructions:
            layers.append(instructions)

        constraint = build_platform_constraint(inputs.platform)
        if constraint:
            layers.append(constraint.strip())

        return "\n\n".join(layer.strip() for layer in layers if layer and layer.strip())
