"""Function-calling schemas sent to the AI gateway."""

from __future__ import annotations

from typing import Any

CHAT_BLOCKS_TOOL = "generate_blocks"
COPY_STRUCTURE_TOOL = "generate_copy_structure"
AUDIENCE_ANALYSIS_TOOL = "generate_audience_analysis"

EDITOR_BLOCK_TYPES = ("headline", "subheadline", "text", "list", "button")

AUDIENCE_ANALYSIS_FIELDS: dict[str, str] = {
    "consciousness_level": (
        "Nível de consciência (Eugene Schwartz): em qual dos 5 estágios o público está? "
        "Explique o mindset atual, o que já sabe, o que ainda não percebeu e os bloqueios "
        "mentais que o impedem de avançar."
    ),
    "psychographic_profile": (
        "Perfil psicográfico completo: valores centrais, estilo de vida, traços de "
        "personalidade relevantes, identidade social e autoimagem."
    ),
    "pains_frustrations": (
        "Mapeamento de dores: dores principais e secundárias, frustrações diárias, "
        "sentimentos negativos recorrentes e seus impactos emocionais e práticos."
    ),
    "desires_aspirations": (
        "Desejos verdadeiros: o que REALMENTE quer alcançar, aspirações de longo prazo "
        "e a versão ideal de si mesmo."
    ),
    "behaviors_habits": (
        "Comportamentos observáveis: rotina, consumo de conteúdo, onde passa o tempo "
        "online e offline e como toma decisões."
    ),
    "language_communication": (
        "Como se comunica: vocabulário específico (10-15 termos ou frases reais), tom "
        "predominante, gírias e como descreve seus problemas."
    ),
    "influences_references": (
        "Influências: autoridades que segue, criadores de conteúdo, marcas favoritas, "
        "comunidades e fontes de informação confiáveis."
    ),
    "internal_barriers": (
        "Barreiras internas: crenças limitantes, medos específicos, padrões de "
        "auto-sabotagem e contradições internas."
    ),
    "anti_persona": (
        "Anti-persona: quem definitivamente NÃO é esse público, valores conflitantes e "
        "sinais de que alguém não pertence a este segmento."
    ),
}


def _function(name: str, description: str, parameters: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {"name": name, "description": description, "parameters": parameters},
    }


def forced_choice(name: str) -> dict[str, Any]:
    return {"type": "function", "function": {"name": name}}


def chat_blocks_tool(count: int | None = None) -> dict[str, Any]:
    """Schema for structured chat replies; pins the array length when ``count`` is known."""
    blocks: dict[str, Any] = {
        "type": "array",
        "description": "Um item por bloco gerado, na ordem de exibição",
        "items": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Título descritivo do bloco"},
                "content": {"type": "string", "description": "Conteúdo pronto para uso"},
            },
            "required": ["title", "content"],
        },
    }
    if count:
        blocks["minItems"] = count
        blocks["maxItems"] = count
    return _function(
        CHAT_BLOCKS_TOOL,
        "Gera blocos de copy estruturados para inserir ou substituir no editor",
        {"type": "object", "properties": {"blocks": blocks}, "required": ["blocks"]},
    )


def copy_structure_tool() -> dict[str, Any]:
    config_fields = (
        "fontSize",
        "textAlign",
        "color",
        "fontWeight",
        "listStyle",
        "backgroundColor",
        "textColor",
        "buttonSize",
        "link",
    )
    block = {
        "type": "object",
        "properties": {
            "type": {"type": "string", "enum": list(EDITOR_BLOCK_TYPES)},
            "content": {
                "description": (
                    "String para texto/headline/subheadline/button, array de strings para listas"
                ),
            },
            "config": {
                "type": "object",
                "description": (
                    "Configurações do bloco. SEMPRE inclua config vazio {} se não houver."
                ),
                "properties": {name: {"type": "string"} for name in config_fields},
            },
        },
        "required": ["type", "content", "config"],
    }
    session = {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "blocks": {"type": "array", "items": block},
        },
        "required": ["title", "blocks"],
    }
    return _function(
        COPY_STRUCTURE_TOOL,
        "Gera estrutura de copy com sessões e blocos",
        {
            "type": "object",
            "properties": {"sessions": {"type": "array", "items": session}},
            "required": ["sessions"],
        },
    )


def audience_analysis_tool() -> dict[str, Any]:
    return _function(
        AUDIENCE_ANALYSIS_TOOL,
        "Gera análise psicográfica profunda de público-alvo",
        {
            "type": "object",
            "properties": {
                name: {"type": "string", "description": description}
                for name, description in AUDIENCE_ANALYSIS_FIELDS.items()
            },
            "required": list(AUDIENCE_ANALYSIS_FIELDS),
            "additionalProperties": False,
        },
    )
