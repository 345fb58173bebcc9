from __future__ import annotations

from typing import Any

import pytest

from copydesk.settings import Settings
from tests.fakes import REPO_ROOT, FakeStore, RecordingGateway


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="http://supabase.test",
        supabase_anon_key="anon",
        supabase_service_role_key="service",
        ai_gateway_url="http://gateway.test/v1/chat/completions",
        ai_gateway_api_key="gateway-key",
        ai_max_retries=0,
        prompts_file=REPO_ROOT / "config" / "prompts.yaml",
        log_level="warning",
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def recording_gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def sample_copy() -> dict[str, Any]:
    return {
        "id": "copy-1",
        "workspace_id": "ws-1",
        "title": "Lançamento Curso",
        "copy_type": "landing_page",
        "project_id": "proj-1",
        "selected_audience_id": "aud-1",
        "selected_offer_id": None,
        "selected_methodology_id": None,
        "system_instruction": None,
        "sessions": [
            {
                "id": "s1",
                "title": "Hero",
                "blocks": [
                    {"id": "b1", "type": "headline", "content": "Aprenda marketing em 30 dias"},
                    {"id": "b2", "type": "list", "content": ["Aulas ao vivo", "Suporte"]},
                ],
            }
        ],
    }


@pytest.fixture
def sample_project() -> dict[str, Any]:
    return {
        "id": "proj-1",
        "brand_name": "Acme",
        "sector": "Educação",
        "central_purpose": "Democratizar o marketing",
        "brand_personality": ["Ousada"],
        "voice_tones": ["Direto", "Amigável"],
        "keywords": [],
        "audience_segments": [
            {
                "id": "aud-1",
                "name": "Empreendedora iniciante",
                "biggest_desire": "Vender todos os dias",
                "biggest_fear": "",
            }
        ],
        "offers": [],
        "methodology": {
            "id": "met-1",
            "name": "Método 3P",
            "description": "Planejar, postar, prosperar",
        },
    }
