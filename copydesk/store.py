"""Supabase access: auth, copies, history, prompt templates and credit RPCs.

All methods are blocking; services call them through ``asyncio.to_thread``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from supabase import Client, create_client

from copydesk.settings import Settings

logger = structlog.get_logger(__name__)

COPY_COLUMNS = (
    "id, workspace_id, title, copy_type, sessions, selected_audience_id, "
    "selected_offer_id, selected_methodology_id, project_id, system_instruction"
)
GENERATION_HISTORY_COLUMNS = (
    "id, generation_type, generation_category, created_at, prompt, model_used, "
    "sessions, original_content"
)


def _first(rows: Any) -> dict[str, Any] | None:
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None


class SupabaseStore:
    """Reads run with the caller's token so row-level security applies; writes
    and RPCs run with the service role."""

    def __init__(
        self,
        settings: Settings,
        *,
        client_factory: Callable[[str, str], Client] = create_client,
    ) -> None:
        self.settings = settings
        self._client_factory = client_factory
        self._admin: Client | None = None

    @property
    def admin(self) -> Client:
        if self._admin is None:
            self._admin = self._client_factory(
                self.settings.supabase_url, self.settings.supabase_service_role_key
            )
        return self._admin

    def _user_client(self, token: str) -> Client:
        client = self._client_factory(self.settings.supabase_url, self.settings.supabase_anon_key)
        client.postgrest.auth(token)
        return client

    def authenticate(self, token: str) -> str | None:
        """Return the user id behind ``token``, or ``None`` when it is not valid."""
        try:
            response = self.admin.auth.get_user(token)
        except Exception as exc:  # auth client raises on expired or malformed tokens
            logger.info("token_rejected", error=str(exc))
            return None
        user = getattr(response, "user", None)
        return getattr(user, "id", None)

    def get_copy(self, copy_id: str, *, token: str) -> dict[str, Any] | None:
        response = (
            self._user_client(token)
            .table("copies")
            .select(COPY_COLUMNS)
            .eq("id", copy_id)
            .limit(1)
            .execute()
        )
        return _first(response.data)

    def get_project(self, project_id: str, *, token: str) -> dict[str, Any] | None:
        response = (
            self._user_client(token)
            .table("projects")
            .select("*")
            .eq("id", project_id)
            .limit(1)
            .execute()
        )
        return _first(response.data)

    def list_generation_history(
        self, copy_id: str, *, token: str, limit: int
    ) -> list[dict[str, Any]]:
        """Newest first."""
        response = (
            self._user_client(token)
            .table("ai_generation_history")
            .select(GENERATION_HISTORY_COLUMNS)
            .eq("copy_id", copy_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return list(response.data or [])

    def list_chat_messages(self, copy_id: str, *, token: str, limit: int) -> list[dict[str, Any]]:
        """Oldest first, as the conversation is replayed to the model."""
        response = (
            self._user_client(token)
            .table("copy_chat_messages")
            .select("role, content, created_at")
            .eq("copy_id", copy_id)
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return list(response.data or [])

    def insert_chat_message(self, row: dict[str, Any]) -> None:
        self.admin.table("copy_chat_messages").insert(row).execute()

    def insert_generation_history(self, row: dict[str, Any]) -> None:
        self.admin.table("ai_generation_history").insert(row).execute()

    def get_prompt_template(self, prompt_key: str) -> dict[str, Any] | None:
        response = (
            self.admin.table("ai_prompt_templates")
            .select("prompt_key, current_prompt, system_instructions")
            .eq("prompt_key", prompt_key)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        return _first(response.data)

    def check_credits(
        self, workspace_id: str, *, estimated_tokens: int, model: str
    ) -> dict[str, Any]:
        response = self.admin.rpc(
            "check_workspace_credits",
            {
                "p_workspace_id": workspace_id,
                "estimated_tokens": estimated_tokens,
                "p_model_name": model,
            },
        ).execute()
        return _first(response.data) or {}

    def debit_credits(
        self,
        workspace_id: str,
        *,
        model: str,
        total_tokens: int,
        input_tokens: int,
        output_tokens: int,
        user_id: str | None,
        generation_id: str | None = None,
    ) -> dict[str, Any]:
        response = self.admin.rpc(
            "debit_workspace_credits",
            {
                "p_workspace_id": workspace_id,
                "p_model_name": model,
                "tokens_used": total_tokens,
                "p_input_tokens": input_tokens,
                "p_output_tokens": output_tokens,
                "generation_id": generation_id,
                "p_user_id": user_id,
            },
        ).execute()
        return _first(response.data) or {}
