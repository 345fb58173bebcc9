"""Prompt sections describing the current copy and its generation history."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

COPY_TYPE_NAMES: dict[str, str] = {
    "landing_page": "Landing Page",
    "email": "E-mail",
    "ad": "Anúncio",
    "anuncio": "Anúncio",
    "vsl": "VSL",
    "webinar": "Webinar",
    "content": "Conteúdo",
    "conteudo": "Conteúdo",
    "message": "Mensagem",
    "mensagem": "Mensagem",
}

EDITOR_BLOCK_NAMES: dict[str, str] = {
    "text": "Texto",
    "headline": "Título",
    "subheadline": "Subtítulo",
    "list": "Lista",
    "cta": "CTA",
    "button": "Botão",
    "image": "Imagem",
    "video": "Vídeo",
    "testimonial": "Depoimento",
    "faq": "FAQ",
}

GENERATION_TYPE_NAMES: dict[str, str] = {
    "create": "Criação",
    "optimize": "Otimização",
    "variation": "Variação",
    "chat": "Chat",
}

BLOCK_PREVIEW_CHARS = 100
NO_HISTORY = "Sem histórico de gerações anteriores."


def copy_type_name(copy_type: str | None) -> str:
    return COPY_TYPE_NAMES.get(copy_type or "", copy_type or "Copy")


def estimate_tokens(text: str) -> float:
    """Rough token estimate: four characters per token."""
    return len(text) / 4


def build_copy_context(copy: Mapping[str, Any]) -> str:
    """Describe the copy's current sessions and blocks."""
    lines = [
        f'Copy: "{copy.get("title") or ""}"',
        f"Tipo: {copy_type_name(copy.get('copy_type'))}",
        "",
        "Estrutura atual:",
    ]
    for session_index, session in enumerate(copy.get("sessions") or [], start=1):
        lines.append("")
        lines.append(f"Sessão {session_index}: {session.get('title') or ''}")
        for block_index, block in enumerate(session.get("blocks") or [], start=1):
            block_type = block.get("type") or ""
            name = EDITOR_BLOCK_NAMES.get(block_type, block_type or "Bloco")
            raw = block.get("content")
            if isinstance(raw, list):
                content = ", ".join(str(item) for item in raw)
            else:
                content = str(raw or "")
            preview = content[:BLOCK_PREVIEW_CHARS]
            suffix = "..." if len(content) > BLOCK_PREVIEW_CHARS else ""
            lines.append(f"  {block_index}. [{name}] {preview}{suffix}")
    return "\n".join(lines) + "\n"


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def time_ago(value: Any, *, now: datetime | None = None) -> str:
    created = _parse_timestamp(value)
    if created is None:
        return "data desconhecida"
    now = now or datetime.now(timezone.utc)
    seconds = max((now - created).total_seconds(), 0)
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    if minutes < 60:
        return f"{minutes}min atrás"
    if hours < 24:
        return f"{hours}h atrás"
    if days < 7:
        return f"{days}d atrás"
    return created.strftime("%d/%m/%Y")


def _affected_sessions(generation: Mapping[str, Any]) -> list[str]:
    sessions = generation.get("sessions") or []
    if not generation.get("original_content") or not sessions:
        return []
    return [f"Sessão {index}" for index in range(1, len(sessions) + 1)][:3]


def build_generation_history_context(
    history: Sequence[Mapping[str, Any]],
    *,
    max_tokens: int = 3000,
    now: datetime | None = None,
) -> str:
    """Summarize past generations, newest first, within a token budget.

    Prompt previews shrink as the budget runs out; entries that no longer fit
    are dropped.
    """
    if not history:
        return NO_HISTORY

    header = f"HISTÓRICO DE GERAÇÕES ({len(history)} gerações):\n\n"
    used = estimate_tokens(header)
    entries: list[str] = []

    for index, generation in enumerate(history, start=1):
        kind = generation.get("generation_type") or ""
        kind_name = GENERATION_TYPE_NAMES.get(kind, kind or "Geração")
        category = generation.get("generation_category") or "Geral"
        remaining = max_tokens - used
        preview_chars = 150 if remaining > 1000 else 100 if remaining > 500 else 50
        prompt = str(generation.get("prompt") or "")
        ellipsis = "..." if len(prompt) > preview_chars else ""

        when = time_ago(generation.get("created_at"), now=now)
        entry = f"{index}. {kind_name} - {category} ({when})\n"
        entry += f"   Modelo: {generation.get('model_used') or 'N/A'}\n"
        entry += f'   Prompt: "{prompt[:preview_chars]}{ellipsis}"\n'
        if remaining > 500:
            affected = _affected_sessions(generation)
            if affected:
                entry += f"   Seções: {', '.join(affected)}\n"
        entry += "\n"

        cost = estimate_tokens(entry)
        if used + cost > max_tokens:
            break
        entries.append(entry)
        used += cost

    return header + "".join(entries)
