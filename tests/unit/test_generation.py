from __future__ import annotations

import asyncio
from typing import Any

import pytest
from copydesk.errors import ServiceError
from copydesk.generation import (
    GenerateCopyRequest,
    GenerationService,
    attach_ids,
    build_user_prompt,
)
from copydesk.prompts import PromptBuilder
from copydesk.settings import Settings
from tests.fakes import USER_ID, FakeStore, RecordingGateway, tool_call_response

STRUCTURE = {
    "sessions": [
        {
            "title": "Hero",
            "blocks": [
                {"type": "headline", "content": "Aprenda marketing em 30 dias", "config": {}},
                {"type": "list", "content": "Aulas ao vivo; Suporte diário"},
            ],
        }
    ]
}


@pytest.fixture
def service(
    settings: Settings, store: FakeStore, recording_gateway: RecordingGateway
) -> GenerationService:
    return GenerationService(
        store=store,
        gateway=recording_gateway.build(settings),
        prompts=PromptBuilder(settings.prompts_path),
    )


def _generate(service: GenerationService, request: GenerateCopyRequest) -> dict[str, Any]:
    async def run() -> dict[str, Any]:
        try:
            return await service.generate(request, user_id=USER_ID)
        finally:
            await service.gateway.aclose()

    return asyncio.run(run())


def test_generate_returns_sessions_with_ids(
    service: GenerationService, store: FakeStore, recording_gateway: RecordingGateway
) -> None:
    recording_gateway.responder = lambda _: tool_call_response(STRUCTURE)

    result = _generate(
        service,
        GenerateCopyRequest(
            prompt="Lançamento do curso",
            copy_type="landing_page",
            copy_id="copy-1",
            workspace_id="ws-1",
            platform="linkedin",
        ),
    )

    session = result["sessions"][0]
    assert session["title"] == "Hero"
    assert session["id"].startswith("ai-session-")
    assert [block["id"].split("-")[-2:] for block in session["blocks"]] == [
        ["0", "0"],
        ["0", "1"],
    ]
    assert session["blocks"][1]["content"] == ["Aulas ao vivo", "Suporte diário"]
    assert session["blocks"][1]["config"] == {}

    request = recording_gateway.last
    assert request["tool_choice"]["function"]["name"] == "generate_copy_structure"
    system = request["messages"][0]["content"]
    assert "especialista em copywriting" in system
    assert "Especializado em landing pages" in system
    assert "RESTRIÇÃO CRÍTICA DE PLATAFORMA: LinkedIn" in system
    assert "**DETALHES DA COPY:**\nLançamento do curso" in request["messages"][1]["content"]

    row = store.inserted_history[0]
    assert row["copy_id"] == "copy-1"
    assert row["generation_type"] == "create"
    assert row["model_used"] == "google/gemini-2.5-flash"
    assert row["sessions"] == result["sessions"]
    assert row["parameters"]["hasProjectIdentity"] is False


def test_generate_prefers_stored_template(
    service: GenerationService, store: FakeStore, recording_gateway: RecordingGateway
) -> None:
    store.templates["generate_copy_email"] = {"current_prompt": "Prompt de e-mail do banco"}
    recording_gateway.responder = lambda _: tool_call_response(STRUCTURE)

    _generate(service, GenerateCopyRequest(prompt="Boas-vindas", copy_type="email"))

    assert recording_gateway.last["messages"][0]["content"] == "Prompt de e-mail do banco"


def test_generate_without_copy_skips_history(
    service: GenerationService, store: FakeStore, recording_gateway: RecordingGateway
) -> None:
    recording_gateway.responder = lambda _: tool_call_response(STRUCTURE)

    _generate(service, GenerateCopyRequest(prompt="Anúncio rápido", copy_type="anuncio"))

    assert store.inserted_history == []


def test_generate_survives_history_failure(
    service: GenerationService, store: FakeStore, recording_gateway: RecordingGateway
) -> None:
    store.fail_writes = True
    recording_gateway.responder = lambda _: tool_call_response(STRUCTURE)

    result = _generate(
        service, GenerateCopyRequest(prompt="Teste", copy_id="copy-1", workspace_id="ws-1")
    )

    assert len(result["sessions"]) == 1


def test_generate_requires_prompt(service: GenerationService) -> None:
    with pytest.raises(ServiceError) as excinfo:
        _generate(service, GenerateCopyRequest(prompt="  "))

    assert excinfo.value.code == "invalid_request"


def test_generate_rejects_payload_without_sessions(
    service: GenerationService, recording_gateway: RecordingGateway
) -> None:
    recording_gateway.responder = lambda _: tool_call_response({"outra": []})

    with pytest.raises(ServiceError) as excinfo:
        _generate(service, GenerateCopyRequest(prompt="Teste"))

    assert excinfo.value.status_code == 502
    assert excinfo.value.message == "Formato de resposta inválido"


def test_user_prompt_sections() -> None:
    prompt = build_user_prompt(
        GenerateCopyRequest(
            prompt="Lançamento",
            objectives=["Vender"],
            project_identity={"brand_name": "Acme", "voice_tones": ["Direto"]},
            offer={"name": "Curso", "differentials": []},
        )
    )

    assert prompt.startswith("Crie uma copy em português brasileiro")
    assert "**IDENTIDADE DO PROJETO:**\n- Nome da Marca: Acme" in prompt
    assert "- Setor: não especificado" in prompt
    assert "- Tons de Voz: Direto" in prompt
    assert "**PÚBLICO-ALVO:**" not in prompt
    assert "- Diferenciais: não especificado" in prompt
    assert "- Objetivos: Vender" in prompt
    assert "- Tamanho: não especificado" in prompt
    assert prompt.index("**DETALHES DA COPY:**") < prompt.index("INSTRUÇÕES IMPORTANTES")


def test_attach_ids() -> None:
    sessions = attach_ids(
        [
            {"title": "A", "blocks": [{"type": "text", "content": "x"}, "lixo"]},
            "lixo",
            {"title": "B"},
        ],
        timestamp=123,
    )

    assert [session["id"] for session in sessions] == ["ai-session-123-0", "ai-session-123-2"]
    assert sessions[0]["blocks"] == [
        {"type": "text", "content": "x", "config": {}, "id": "ai-block-123-0-0"}
    ]
    assert sessions[1]["blocks"] == []


def test_attach_ids_handles_non_list() -> None:
    assert attach_ids(None, timestamp=1) == []
