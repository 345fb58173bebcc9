"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any

import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from copydesk import errors, metrics
from copydesk.audience import AudienceService
from copydesk.chat import ChatRequest, ChatService
from copydesk.gateway import AIGateway
from copydesk.generation import GenerateCopyRequest, GenerationService
from copydesk.models import ExpectedStructure
from copydesk.parser import parse_ai_response, parse_ai_response_with_structure
from copydesk.prompts import PromptBuilder
from copydesk.services import Caller, run_blocking
from copydesk.sessions import convert_parsed_blocks_to_sessions
from copydesk.settings import Settings, get_settings
from copydesk.store import SupabaseStore


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(app_settings)]

# Security logger for auth/limit events
_security_logger = structlog.get_logger("security")

LIMITED_PATHS = frozenset({"/copy-chat", "/generate-copy", "/analyze-audience", "/parse"})


def configure_logging(log_level: str) -> None:
    numeric_level = logging.getLevelName(log_level.upper())
    if isinstance(numeric_level, str):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


async def require_caller(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Caller:
    """Validate the bearer token with Supabase Auth."""
    if not authorization:
        _security_logger.warning(
            "auth_failure", path=str(request.url.path), reason="missing_authorization"
        )
        raise errors.missing_authorization()
    token = authorization.replace("Bearer ", "", 1).strip()
    store: SupabaseStore = request.app.state.store
    user_id = await run_blocking(store.authenticate, token) if token else None
    if not user_id:
        _security_logger.warning(
            "auth_failure", path=str(request.url.path), reason="invalid_token"
        )
        raise errors.unauthorized()
    return Caller(user_id=user_id, token=token)


CallerDep = Annotated[Caller, Depends(require_caller)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CopyChatModel(_CamelModel):
    copy_id: str | None = Field(default=None, alias="copyId")
    message: str | None = None
    has_selection: bool = Field(default=False, alias="hasSelection")
    platform: str | None = None


class GenerateCopyModel(_CamelModel):
    copy_type: str | None = Field(default=None, alias="copyType")
    objectives: list[str] | None = None
    styles: list[str] | None = None
    size: str | None = None
    preferences: list[str] | None = None
    prompt: str | None = None
    project_identity: dict[str, Any] | None = Field(default=None, alias="projectIdentity")
    audience_segment: dict[str, Any] | None = Field(default=None, alias="audienceSegment")
    offer: dict[str, Any] | None = None
    copy_id: str | None = Field(default=None, alias="copyId")
    workspace_id: str | None = Field(default=None, alias="workspaceId")
    platform: str | None = None


class AnalyzeAudienceModel(BaseModel):
    segment: dict[str, Any] | None = None
    workspace_id: str | None = None


class ParseModel(_CamelModel):
    markdown: str = ""
    expected_structure: dict[str, Any] | None = Field(default=None, alias="expectedStructure")


def _parse(markdown: str, expected: dict[str, Any] | None) -> dict[str, Any]:
    if expected:
        parsed = parse_ai_response_with_structure(markdown, ExpectedStructure.from_dict(expected))
    else:
        parsed = parse_ai_response(markdown)
    sessions = convert_parsed_blocks_to_sessions(parsed.blocks)
    return {"parsed": parsed.asdict(), "sessions": [session.asdict() for session in sessions]}


def create_app(
    settings: Settings | None = None,
    *,
    store: SupabaseStore | None = None,
    gateway: AIGateway | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = store or SupabaseStore(settings)
    gateway = gateway or AIGateway(settings)
    prompts = PromptBuilder(settings.prompts_path)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await gateway.aclose()

    app = FastAPI(title="Copydesk", version=settings.service_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.gateway = gateway
    app.state.chat = ChatService(settings=settings, store=store, gateway=gateway, prompts=prompts)
    app.state.generation = GenerationService(store=store, gateway=gateway, prompts=prompts)
    app.state.audience = AudienceService(store=store, gateway=gateway, prompts=prompts)
    parse_semaphore = asyncio.Semaphore(settings.max_concurrent_ai_requests)

    @app.exception_handler(errors.ServiceError)
    async def service_error_handler(_: Request, exc: errors.ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        error = errors.invalid_request("Corpo da requisição inválido")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.middleware("http")
    async def enforce_limits(request: Request, call_next):
        if request.url.path in LIMITED_PATHS:
            limit = settings.max_request_size_bytes
            content_length = request.headers.get("content-length")
            if content_length:
                try:
                    size = int(content_length)
                    if size > limit:
                        _security_logger.warning(
                            "request_rejected",
                            path=str(request.url.path),
                            reason="body_too_large",
                            size=size,
                            limit=limit,
                        )
                        return Response(
                            content="request too large",
                            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                            media_type="text/plain",
                        )
                except ValueError:
                    pass  # Ignore malformed header and fall through
        return await call_next(request)

    @app.get("/healthz", response_class=Response)
    async def healthz() -> Response:
        return Response(content="ok\n", media_type="text/plain")

    @app.post("/copy-chat")
    async def copy_chat(body: CopyChatModel, caller: CallerDep) -> Response:
        chat: ChatService = app.state.chat
        turn = await chat.prepare(
            ChatRequest(
                copy_id=body.copy_id or "",
                message=body.message or "",
                has_selection=body.has_selection,
                platform=body.platform,
            ),
            caller,
        )
        if turn.structured:
            return JSONResponse(await chat.respond_structured(turn))
        events = await chat.respond_stream(turn)
        return StreamingResponse(
            events,
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.post("/generate-copy")
    async def generate_copy(body: GenerateCopyModel, caller: CallerDep) -> dict[str, Any]:
        generation: GenerationService = app.state.generation
        return await generation.generate(
            GenerateCopyRequest(
                prompt=body.prompt or "",
                copy_type=body.copy_type or "outro",
                objectives=body.objectives or [],
                styles=body.styles or [],
                size=body.size,
                preferences=body.preferences or [],
                project_identity=body.project_identity,
                audience_segment=body.audience_segment,
                offer=body.offer,
                copy_id=body.copy_id,
                workspace_id=body.workspace_id,
                platform=body.platform,
            ),
            user_id=caller.user_id,
        )

    @app.post("/analyze-audience")
    async def analyze_audience(body: AnalyzeAudienceModel, caller: CallerDep) -> dict[str, Any]:
        audience: AudienceService = app.state.audience
        return await audience.analyze(body.segment, body.workspace_id, user_id=caller.user_id)

    @app.post("/parse")
    async def parse_endpoint(
        body: ParseModel, settings: SettingsDep, _: CallerDep
    ) -> dict[str, Any]:
        async with parse_semaphore:
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(_parse, body.markdown, body.expected_structure),
                    timeout=settings.request_timeout_seconds,
                )
            except asyncio.TimeoutError:
                _security_logger.warning(
                    "request_timeout",
                    path="/parse",
                    timeout_seconds=settings.request_timeout_seconds,
                )
                raise HTTPException(
                    status_code=status.HTTP_408_REQUEST_TIMEOUT,
                    detail="request timeout",
                ) from None

    @app.get("/metrics")
    async def metrics_endpoint(settings: SettingsDep) -> Response:
        if not settings.metrics_enabled:
            raise HTTPException(status_code=404, detail="metrics disabled")
        payload, content_type = metrics.render_metrics()
        return Response(content=payload, media_type=content_type)

    return app
