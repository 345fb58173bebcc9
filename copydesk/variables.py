"""``#variable`` resolution against the copy's project context."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

NOT_SELECTED = "NÃO SELECIONADO"
NOT_FILLED = "DADO NÃO CADASTRADO"

VARIABLE_TOKEN = re.compile(r"#(\w+)")


@dataclass(slots=True, frozen=True)
class VariableDefinition:
    path: str
    label: str

    @property
    def group(self) -> str:
        return self.path.split(".", 1)[0]

    @property
    def field_path(self) -> str:
        return self.path.split(".", 1)[1]


VARIABLE_DEFINITIONS: dict[str, VariableDefinition] = {
    # project identity
    "marca_nome": VariableDefinition("project_identity.brand_name", "Nome da Marca"),
    "setor": VariableDefinition("project_identity.sector", "Setor de Atuação"),
    "proposito_central": VariableDefinition(
        "project_identity.central_purpose", "Propósito Central"
    ),
    "personalidade_marca": VariableDefinition(
        "project_identity.brand_personality", "Personalidade da Marca"
    ),
    "tons_voz": VariableDefinition("project_identity.voice_tones", "Tons de Voz"),
    "palavras_chave": VariableDefinition("project_identity.keywords", "Palavras-Chave"),
    # audience
    "nome_persona": VariableDefinition("audience_segment.name", "Nome da Persona"),
    "idade_minima": VariableDefinition("audience_segment.age_min", "Idade Mínima"),
    "idade_maxima": VariableDefinition("audience_segment.age_max", "Idade Máxima"),
    "genero": VariableDefinition("audience_segment.gender", "Gênero"),
    "localizacao": VariableDefinition("audience_segment.location", "Localização"),
    "renda": VariableDefinition("audience_segment.income_level", "Nível de Renda"),
    "ocupacao": VariableDefinition("audience_segment.occupation", "Ocupação"),
    "maior_desejo": VariableDefinition("audience_segment.biggest_desire", "Maior Desejo"),
    "maior_medo": VariableDefinition("audience_segment.biggest_fear", "Maior Medo"),
    "principal_objecao": VariableDefinition("audience_segment.main_objection", "Principal Objeção"),
    "nivel_consciencia": VariableDefinition(
        "audience_segment.awareness_level", "Nível de Consciência"
    ),
    "sofisticacao": VariableDefinition(
        "audience_segment.sophistication_level", "Nível de Sofisticação"
    ),
    "dores": VariableDefinition("audience_segment.pain_points", "Dores"),
    "desejos": VariableDefinition("audience_segment.desires", "Desejos"),
    "objecoes": VariableDefinition("audience_segment.objections", "Objeções"),
    # offer
    "nome_oferta": VariableDefinition("offer.name", "Nome da Oferta"),
    "descricao_oferta": VariableDefinition("offer.description", "Descrição da Oferta"),
    "preco": VariableDefinition("offer.price", "Preço"),
    "preco_original": VariableDefinition("offer.original_price", "Preço Original"),
    "beneficios": VariableDefinition("offer.benefits", "Benefícios"),
    "garantia": VariableDefinition("offer.guarantee", "Garantia"),
    "bonus": VariableDefinition("offer.bonuses", "Bônus"),
    "urgencia": VariableDefinition("offer.urgency", "Urgência"),
    "escassez": VariableDefinition("offer.scarcity", "Escassez"),
    # methodology
    "nome_metodologia": VariableDefinition("methodology.name", "Nome da Metodologia"),
    "descricao_metodologia": VariableDefinition(
        "methodology.description", "Descrição da Metodologia"
    ),
    "etapas": VariableDefinition("methodology.steps", "Etapas"),
    "diferencial": VariableDefinition("methodology.differentiator", "Diferencial"),
    "resultados": VariableDefinition("methodology.expected_results", "Resultados Esperados"),
}


@dataclass(slots=True)
class VariableContext:
    project_identity: dict[str, Any] | None = None
    audience_segment: dict[str, Any] | None = None
    offer: dict[str, Any] | None = None
    methodology: dict[str, Any] | None = None

    def group(self, name: str) -> dict[str, Any] | None:
        return getattr(self, name, None)


@dataclass(slots=True)
class VariableResolution:
    enhanced_message: str
    context_text: str = ""
    resolved: list[str] = field(default_factory=list)
    missing: list[dict[str, str]] = field(default_factory=list)


def get_nested_value(data: Any, path: str) -> Any:
    current = data
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, tuple, dict)) and not value)


def resolve_variables(message: str, context: VariableContext) -> VariableResolution:
    """Inline ``#token`` values as ``[Label: value]``.

    Unknown tokens are left untouched. A token whose group is absent becomes
    ``[Label: NÃO SELECIONADO]``; a present group with an empty field becomes
    ``[Label: DADO NÃO CADASTRADO]``. Both are reported as missing.
    """
    resolved: list[str] = []
    missing: list[dict[str, str]] = []
    seen: set[str] = set()

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        definition = VARIABLE_DEFINITIONS.get(name)
        if definition is None:
            return match.group(0)

        group = context.group(definition.group)
        if group is None:
            placeholder, reason = NOT_SELECTED, "not_selected"
        else:
            value = get_nested_value(group, definition.field_path)
            if not _is_empty(value):
                formatted = format_value(value)
                if name not in seen:
                    resolved.append(f"{definition.label}: {formatted}")
                    seen.add(name)
                return f"[{definition.label}: {formatted}]"
            placeholder, reason = NOT_FILLED, "not_filled"

        if name not in seen:
            missing.append({"variable": name, "label": definition.label, "reason": reason})
            seen.add(name)
        return f"[{definition.label}: {placeholder}]"

    enhanced = VARIABLE_TOKEN.sub(substitute, message)
    context_text = ""
    if resolved:
        lines = "\n".join(f"• {entry}" for entry in resolved)
        context_text = f"\n\n🔖 CONTEXTO DAS VARIÁVEIS MENCIONADAS:\n{lines}"
    return VariableResolution(
        enhanced_message=enhanced,
        context_text=context_text,
        resolved=resolved,
        missing=missing,
    )
