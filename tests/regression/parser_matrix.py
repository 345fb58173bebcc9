"""Scenario matrix for exercising the response parser end to end."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from copydesk.parser import parse_ai_response, parse_ai_response_with_structure
from copydesk.sessions import convert_parsed_blocks_to_sessions


@dataclass(slots=True)
class Scenario:
    name: str
    markdown: str
    strategy: str | None
    block_count: int
    expected_structure: dict[str, Any] | None = None
    block_types: list[str] = field(default_factory=list)


SCENARIOS: list[Scenario] = [
    Scenario(
        name="numbered-headlines",
        markdown=(
            "Aqui vão as opções:\n\n"
            "1. Headline de urgência\n2. Headline de exclusividade\n3. Headline de escassez"
        ),
        strategy="numbered",
        block_count=3,
        block_types=["headline", "headline", "headline"],
    ),
    Scenario(
        name="numbered-script-aggregated",
        markdown="1. Roteiro do vídeo\nAbertura com gancho\n2. Cena de impacto\nClose no produto",
        strategy="numbered",
        block_count=1,
        block_types=["text"],
    ),
    Scenario(
        name="fenced-body",
        markdown="Use este texto:\n\n```\nCompre agora e ganhe 20% de desconto\n```",
        strategy="fenced",
        block_count=1,
    ),
    Scenario(
        name="headings-options",
        markdown=(
            "### Opção 1: Urgência\nVagas acabando hoje\n\n"
            "### Opção 2: Exclusividade\nSó para membros"
        ),
        strategy="headings",
        block_count=2,
    ),
    Scenario(
        name="headings-sub-sections",
        markdown="### Anúncio 1\nTexto principal\n### Detalhes\nMais texto",
        strategy="headings",
        block_count=1,
    ),
    Scenario(
        name="catchall-paragraph",
        markdown="Descubra o método que já ajudou mais de 3 mil alunas a vender todos os dias.",
        strategy="catchall",
        block_count=1,
    ),
    Scenario(
        name="conversation-only",
        markdown="Obrigado!",
        strategy=None,
        block_count=0,
    ),
    Scenario(
        name="forced-even-split",
        markdown="Transforme sua rotina\nCom aulas ao vivo e suporte diário para vender mais.",
        strategy="forced",
        block_count=2,
        expected_structure={"sessions": [{"title": "Hero", "blockTypes": ["headline", "text"]}]},
        block_types=["headline", "text"],
    ),
]


def run_scenario(scenario: Scenario) -> dict[str, Any]:
    if scenario.expected_structure:
        parsed = parse_ai_response_with_structure(scenario.markdown, scenario.expected_structure)
    else:
        parsed = parse_ai_response(scenario.markdown)
    sessions = convert_parsed_blocks_to_sessions(parsed.blocks)

    failures: list[str] = []
    if parsed.strategy != scenario.strategy:
        failures.append(f"strategy {parsed.strategy} != expected {scenario.strategy}")
    if len(parsed.blocks) != scenario.block_count:
        failures.append(f"{len(parsed.blocks)} blocks != expected {scenario.block_count}")
    actual_types = [block.type for block in parsed.blocks]
    if scenario.block_types and actual_types != scenario.block_types:
        failures.append(f"types {actual_types} != expected {scenario.block_types}")

    return {
        "scenario": scenario.name,
        "strategy": parsed.strategy,
        "actionable": parsed.has_actionable_content,
        "blocks": [block.asdict() for block in parsed.blocks],
        "sessions": len(sessions),
        "failures": failures,
    }


def run_matrix() -> list[dict[str, Any]]:
    return [run_scenario(scenario) for scenario in SCENARIOS]
