from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from copydesk.context import (
    NO_HISTORY,
    build_copy_context,
    build_generation_history_context,
    copy_type_name,
    time_ago,
)

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def test_copy_context_lists_sessions_and_blocks(sample_copy: dict[str, Any]) -> None:
    context = build_copy_context(sample_copy)

    assert context.startswith('Copy: "Lançamento Curso"\nTipo: Landing Page\n')
    assert "Sessão 1: Hero" in context
    assert "  1. [Título] Aprenda marketing em 30 dias" in context
    assert "  2. [Lista] Aulas ao vivo, Suporte" in context
    assert context.endswith("\n")


def test_copy_context_truncates_long_blocks() -> None:
    copy = {
        "title": "Longa",
        "copy_type": "email",
        "sessions": [{"title": "Corpo", "blocks": [{"type": "text", "content": "a" * 150}]}],
    }

    assert f"[Texto] {'a' * 100}..." in build_copy_context(copy)


def test_copy_context_without_sessions() -> None:
    context = build_copy_context({"title": "Nova", "copy_type": None})

    assert "Tipo: Copy" in context
    assert "Sessão" not in context


@pytest.mark.parametrize(
    "copy_type, expected",
    [("landing_page", "Landing Page"), ("anuncio", "Anúncio"), ("outro", "outro"), (None, "Copy")],
)
def test_copy_type_name(copy_type: str | None, expected: str) -> None:
    assert copy_type_name(copy_type) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2026-01-10T11:30:00Z", "30min atrás"),
        ("2026-01-10T09:00:00+00:00", "3h atrás"),
        ("2026-01-08T12:00:00Z", "2d atrás"),
        ("2025-12-01T12:00:00Z", "01/12/2025"),
        ("2026-01-10T11:59:00", "1min atrás"),
        ("ontem", "data desconhecida"),
        (None, "data desconhecida"),
    ],
)
def test_time_ago(value: str | None, expected: str) -> None:
    assert time_ago(value, now=NOW) == expected


def test_empty_history() -> None:
    assert build_generation_history_context([]) == NO_HISTORY


def test_history_entry_format() -> None:
    history = [
        {
            "generation_type": "optimize",
            "generation_category": "Headline",
            "created_at": "2026-01-10T11:00:00Z",
            "model_used": "google/gemini-2.5-flash",
            "prompt": "Otimize a headline",
            "original_content": {"sessions": []},
            "sessions": [{}, {}],
        }
    ]

    context = build_generation_history_context(history, now=NOW)

    assert context == (
        "HISTÓRICO DE GERAÇÕES (1 gerações):\n\n"
        "1. Otimização - Headline (1h atrás)\n"
        "   Modelo: google/gemini-2.5-flash\n"
        '   Prompt: "Otimize a headline"\n'
        "   Seções: Sessão 1, Sessão 2\n"
        "\n"
    )


def test_history_defaults_for_missing_fields() -> None:
    context = build_generation_history_context([{"prompt": "Crie"}], now=NOW)

    assert "1. Geração - Geral (data desconhecida)" in context
    assert "Modelo: N/A" in context
    assert "Seções" not in context


def test_long_prompts_are_previewed() -> None:
    context = build_generation_history_context([{"prompt": "x" * 300}], now=NOW)

    assert f'Prompt: "{"x" * 150}..."' in context


def test_history_respects_token_budget() -> None:
    history = [{"generation_type": "create", "prompt": "p" * 10} for _ in range(20)]

    context = build_generation_history_context(history, max_tokens=200, now=NOW)

    entries = context.count("Modelo:")
    assert 1 <= entries < 20
    assert len(context) / 4 <= 200
