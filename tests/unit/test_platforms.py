from __future__ import annotations

import pytest
from copydesk.platforms import PLATFORM_LIMITS, RULE, build_platform_constraint


@pytest.mark.parametrize("platform", [None, "", "orkut"])
def test_unknown_platform_has_no_constraint(platform: str | None) -> None:
    assert build_platform_constraint(platform) == ""


def test_regular_platform_constraint() -> None:
    constraint = build_platform_constraint("instagram")

    assert "RESTRIÇÃO CRÍTICA DE PLATAFORMA: Instagram" in constraint
    assert "LIMITE MÁXIMO ABSOLUTO: 2.200 caracteres" in constraint
    assert "NÃO PODE exceder 2200 caracteres" in constraint
    assert "MODO ESTRITO" not in constraint
    assert constraint.endswith(f"{RULE}\n")


def test_short_platforms_add_strict_rules() -> None:
    constraint = build_platform_constraint("x_twitter")

    assert "LIMITE MÁXIMO ABSOLUTO: 280 caracteres" in constraint
    assert "MODO ESTRITO ATIVADO (limite muito curto: 280 chars)" in constraint


def test_thousands_use_dot_separator() -> None:
    assert "63.206 caracteres" in build_platform_constraint("facebook")


def test_strict_mode_only_for_short_limits() -> None:
    strict = {name for name, limit in PLATFORM_LIMITS.items() if limit.strict_mode}

    assert strict == {"x_twitter", "threads", "pinterest"}
