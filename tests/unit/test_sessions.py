from __future__ import annotations

from copydesk.models import ParsedContent
from copydesk.parser import parse_ai_response
from copydesk.sessions import (
    DEFAULT_SESSION_TITLE,
    HEADLINE_CONFIG,
    LIST_CONFIG,
    TEXT_CONFIG,
    convert_parsed_blocks_to_sessions,
    create_block,
    list_items,
    session_title_for,
)


def _block(block_type: str, content: str, title: str | None = None) -> ParsedContent:
    return ParsedContent(
        type=block_type,
        content=content,
        raw_content=content,
        start_index=0,
        end_index=len(content),
        title=title,
    )


def test_high_level_titles_open_sessions() -> None:
    """High-level block titles should open new sessions."""
    sessions = convert_parsed_blocks_to_sessions(
        [
            _block("headline", "Vagas acabando hoje", "Opção 1: Urgência"),
            _block("text", "Detalhes da oferta", "Detalhes"),
            _block("headline", "Só para membros", "Opção 2: Exclusividade"),
        ]
    )

    assert [session.title for session in sessions] == ["Urgência", "Exclusividade"]
    assert [len(session.blocks) for session in sessions] == [2, 1]


def test_blocks_before_any_high_level_title_use_default_session() -> None:
    """Leading blocks should go into the default session."""
    sessions = convert_parsed_blocks_to_sessions(
        [_block("text", "Primeiro parágrafo"), _block("text", "Segundo parágrafo")]
    )

    assert len(sessions) == 1
    assert sessions[0].title == DEFAULT_SESSION_TITLE
    assert len(sessions[0].blocks) == 2


def test_empty_input_yields_no_sessions() -> None:
    """No blocks should yield no sessions."""
    assert convert_parsed_blocks_to_sessions([]) == []


def test_session_title_keeps_descriptive_part_of_numbered_title() -> None:
    """Numbered titles should keep their descriptive part."""
    assert session_title_for(_block("headline", "x", "1. Opção urgente")) == "Opção urgente"


def test_session_title_falls_back_to_type_and_preview() -> None:
    """Untitled blocks should get a type and preview title."""
    content = "Um parágrafo bem longo que passa de cinquenta caracteres com folga."
    title = session_title_for(_block("text", content))

    assert title == f"Texto - {content[:50].strip()}..."
    assert session_title_for(_block("unknown", "Curto")) == "Conteúdo - Curto"


def test_headline_block_is_cleaned() -> None:
    """Headline blocks should be cleaned of meta prefixes."""
    block = create_block(_block("headline", '"Compre agora"'))

    assert block.type == "headline"
    assert block.content == "Compre agora"
    assert block.config == HEADLINE_CONFIG


def test_list_block_items_are_rendered() -> None:
    """List blocks should render their items."""
    block = create_block(_block("list", "- **Aulas** ao vivo\n- Suporte diário"))

    assert block.type == "list"
    assert block.content == ["<strong>Aulas</strong> ao vivo", "Suporte diário"]
    assert block.config == LIST_CONFIG


def test_ad_and_text_blocks_become_html_text() -> None:
    """Ad and text blocks should become HTML text."""
    ad = create_block(_block("ad", "Texto *leve*"))

    assert ad.type == "text"
    assert ad.content == "Texto <em>leve</em>"
    assert ad.config == TEXT_CONFIG


def test_block_config_is_not_shared() -> None:
    """Each block should get its own config dict."""
    first = create_block(_block("headline", "Um"))
    first.config["fontSize"] = "small"

    assert create_block(_block("headline", "Dois")).config["fontSize"] == "large"


def test_list_items_strip_markers() -> None:
    """List items should lose their markers."""
    assert list_items("- um\n* dois\n3. três\n4) quatro\n\n") == ["um", "dois", "três", "quatro"]


def test_parsed_response_to_sessions() -> None:
    """A parsed response should convert straight to sessions."""
    parsed = parse_ai_response(
        "### Opção 1: Urgência\nVagas acabando hoje\n\n### Opção 2: Exclusividade\nSó para membros"
    )
    sessions = [session.asdict() for session in convert_parsed_blocks_to_sessions(parsed.blocks)]

    assert [session["title"] for session in sessions] == ["Urgência", "Exclusividade"]
    assert sessions[0]["blocks"][0]["content"] == "Vagas acabando hoje"
    assert sessions[0]["id"].startswith("session-")
    assert sessions[0]["blocks"][0]["id"].startswith("block-")
