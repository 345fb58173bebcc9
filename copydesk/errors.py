"""Error envelope shared by every HTTP operation."""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """An error surfaced to the caller as ``{"error": code, "message": ...}``."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = 500,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        payload.update(self.extra)
        return payload

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"ServiceError(code={self.code!r}, status_code={self.status_code})"


def missing_authorization() -> ServiceError:
    return ServiceError(
        "missing_authorization", "Authorization header is required", status_code=401
    )


def unauthorized() -> ServiceError:
    return ServiceError("unauthorized", "Invalid or expired token", status_code=401)


def invalid_request(message: str) -> ServiceError:
    return ServiceError("invalid_request", message, status_code=400)


def copy_not_found() -> ServiceError:
    return ServiceError("copy_not_found", "Copy não encontrada", status_code=404)


def insufficient_credits(
    *, current_balance: Any = None, estimated_debit: Any = None
) -> ServiceError:
    return ServiceError(
        "insufficient_credits",
        "Créditos insuficientes",
        status_code=402,
        extra={"current_balance": current_balance, "estimated_debit": estimated_debit},
    )


def credit_check_failed() -> ServiceError:
    return ServiceError("credit_check_failed", "Erro ao verificar créditos", status_code=500)


def rate_limit_exceeded() -> ServiceError:
    return ServiceError(
        "rate_limit_exceeded",
        "Limite de requisições excedido. Tente novamente em alguns segundos.",
        status_code=429,
    )


def gateway_credits_required() -> ServiceError:
    return ServiceError(
        "ai_gateway_credits_required", "Créditos do AI gateway necessários.", status_code=402
    )


def gateway_error(message: str = "AI gateway error") -> ServiceError:
    return ServiceError("ai_gateway_error", message, status_code=502)


def internal_error(message: str = "Erro interno do servidor") -> ServiceError:
    return ServiceError("internal_error", message, status_code=500)
