"""Per-platform character limits injected into prompts."""

from __future__ import annotations

from dataclasses import dataclass

RULE = "━" * 45


@dataclass(slots=True, frozen=True)
class PlatformLimit:
    max_chars: int
    label: str
    strict_mode: bool = False


PLATFORM_LIMITS: dict[str, PlatformLimit] = {
    "x_twitter": PlatformLimit(280, "X (Twitter)", strict_mode=True),
    "threads": PlatformLimit(500, "Threads", strict_mode=True),
    "pinterest": PlatformLimit(500, "Pinterest", strict_mode=True),
    "instagram": PlatformLimit(2200, "Instagram"),
    "linkedin": PlatformLimit(3000, "LinkedIn"),
    "tiktok": PlatformLimit(4000, "TikTok"),
    "youtube": PlatformLimit(5000, "YouTube"),
    "facebook": PlatformLimit(63206, "Facebook"),
}


def _format_pt_br(value: int) -> str:
    return f"{value:,}".replace(",", ".")


def build_platform_constraint(platform: str | None) -> str:
    """Return the constraint section for ``platform``; empty for unknown platforms.

    The section is appended last to the system prompt.
    """
    limit = PLATFORM_LIMITS.get(platform or "")
    if limit is None:
        return ""

    constraint = (
        f"\n{RULE}\n"
        f"⚠️ RESTRIÇÃO CRÍTICA DE PLATAFORMA: {limit.label}\n"
        f"{RULE}\n"
        f"LIMITE MÁXIMO ABSOLUTO: {_format_pt_br(limit.max_chars)} caracteres\n\n"
        "REGRAS INVIOLÁVEIS:\n"
        f"- O texto final NÃO PODE exceder {limit.max_chars} caracteres "
        "(incluindo espaços e emojis)\n"
        "- Conte caracteres mentalmente durante a geração\n"
        "- Priorize IMPACTO sobre VOLUME\n"
        "- Se o conteúdo naturalmente excederia o limite, seja mais conciso\n"
    )
    if limit.strict_mode:
        constraint += (
            f"\n⚠️ MODO ESTRITO ATIVADO (limite muito curto: {limit.max_chars} chars)\n"
            "REGRAS ADICIONAIS:\n"
            "- CADA PALAVRA deve ter propósito - elimine TODO \"enchimento\"\n"
            "- Use frases de impacto, não parágrafos\n"
            "- Verbos fortes e diretos (sem gerúndios ou construções passivas)\n"
            "- ZERO redundância ou repetição de ideias\n"
            "- Emojis contam como ~2 caracteres cada\n"
            "- Se o conteúdo não couber, sugira dividir em múltiplos posts\n"
        )
    return f"{constraint}{RULE}\n"
