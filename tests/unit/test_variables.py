from __future__ import annotations

import pytest
from copydesk.variables import (
    NOT_FILLED,
    NOT_SELECTED,
    VARIABLE_DEFINITIONS,
    VariableContext,
    format_value,
    get_nested_value,
    resolve_variables,
)


@pytest.fixture
def context() -> VariableContext:
    return VariableContext(
        project_identity={"brand_name": "Acme", "voice_tones": ["Direto", "Amigável"]},
        audience_segment={"name": "Ana", "biggest_fear": ""},
    )


def test_tokens_are_inlined_with_labels(context: VariableContext) -> None:
    """Tokens should be replaced by labelled values."""
    result = resolve_variables("Escreva para #nome_persona da #marca_nome", context)

    assert result.enhanced_message == (
        "Escreva para [Nome da Persona: Ana] da [Nome da Marca: Acme]"
    )
    assert result.resolved == ["Nome da Persona: Ana", "Nome da Marca: Acme"]
    assert result.missing == []
    assert result.context_text == (
        "\n\n🔖 CONTEXTO DAS VARIÁVEIS MENCIONADAS:\n"
        "• Nome da Persona: Ana\n"
        "• Nome da Marca: Acme"
    )


def test_list_values_are_joined(context: VariableContext) -> None:
    """List values should be joined into one string."""
    result = resolve_variables("Use #tons_voz", context)

    assert result.enhanced_message == "Use [Tons de Voz: Direto, Amigável]"


def test_empty_field_is_reported_as_not_filled(context: VariableContext) -> None:
    """Empty fields should be reported as not filled."""
    result = resolve_variables("Fale do #maior_medo", context)

    assert result.enhanced_message == f"Fale do [Maior Medo: {NOT_FILLED}]"
    assert result.missing == [
        {"variable": "maior_medo", "label": "Maior Medo", "reason": "not_filled"}
    ]
    assert result.context_text == ""


def test_absent_group_is_reported_as_not_selected(context: VariableContext) -> None:
    """Missing groups should be reported as not selected."""
    result = resolve_variables("Mostre o #preco", context)

    assert result.enhanced_message == f"Mostre o [Preço: {NOT_SELECTED}]"
    assert result.missing[0]["reason"] == "not_selected"


def test_unknown_tokens_are_left_alone(context: VariableContext) -> None:
    """Unknown tokens should be left in place."""
    message = "Use a hashtag #lancamento2025"

    result = resolve_variables(message, context)

    assert result.enhanced_message == message
    assert result.resolved == []
    assert result.missing == []


def test_repeated_token_is_reported_once(context: VariableContext) -> None:
    """A repeated token should be reported once."""
    result = resolve_variables("#marca_nome e #marca_nome, sem #preco nem #preco", context)

    assert result.enhanced_message.count("[Nome da Marca: Acme]") == 2
    assert result.resolved == ["Nome da Marca: Acme"]
    assert len(result.missing) == 1


def test_message_without_tokens() -> None:
    """A message without tokens should pass through."""
    result = resolve_variables("Sem variáveis aqui", VariableContext())

    assert result.enhanced_message == "Sem variáveis aqui"
    assert result.context_text == ""


def test_every_definition_points_to_a_context_group() -> None:
    """Every definition should point at a context group."""
    groups = {"project_identity", "audience_segment", "offer", "methodology"}

    assert {definition.group for definition in VARIABLE_DEFINITIONS.values()} <= groups


def test_get_nested_value() -> None:
    """Dotted paths should resolve nested values."""
    data = {"a": {"b": 1}}

    assert get_nested_value(data, "a.b") == 1
    assert get_nested_value(data, "a.c") is None
    assert get_nested_value(data, "a.b.c") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        (["a", 1], "a, 1"),
        ({"preço": 10}, '{"preço": 10}'),
        (97.5, "97.5"),
    ],
)
def test_format_value(value: object, expected: str) -> None:
    """Values should be formatted for inlining."""
    assert format_value(value) == expected
