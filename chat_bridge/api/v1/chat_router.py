"""Chat widget API router.

Endpoints:
    POST /api/chat/start    - open a session and get the greeting
    POST /api/chat/message  - send a visitor turn
    GET  /api/chat/session  - session state and history (widget restore)
    POST /api/chat/end      - end a session
    GET  /api/chat/config   - client-safe widget configuration
    GET  /api/chat/health   - engine status and active session count

Tenant comes from the ``X-Tenant-ID`` header or ``?tenant=``.
"""

import math
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from chat_bridge.core.config import settings
from chat_bridge.core.exceptions import RateLimitedError, SessionNotFoundError
from chat_bridge.dependencies import (
    get_chat_adapter,
    get_chat_rate_limiter,
    get_client_ip,
    get_engine_client,
    get_lookup_rate_limiter,
    get_tenant_id,
)
from chat_bridge.schemas.chat_schema import (
    BusinessInfo,
    ChatHealthResponse,
    EndChatRequest,
    EndChatResponse,
    MessageRequest,
    ProcessMessageResponse,
    SessionHistoryResponse,
    StartChatRequest,
    StartChatResponse,
    WidgetConfigResponse,
)
from chat_bridge.schemas.response_schema import (
    ApiResponse,
    ErrorResponse,
    success_response,
)
from chat_bridge.schemas.session_schema import SessionMetadata
from chat_bridge.services.chat_adapter import ChatAdapter
from chat_bridge.services.engine_client import ConversationEngine
from chat_bridge.services.rate_limiter import SlidingWindowRateLimiter

router = APIRouter(
    prefix="/api/chat",
    tags=["chat"],
    responses={
        429: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)

ChatAdapterDep = Annotated[ChatAdapter, Depends(get_chat_adapter)]
TenantDep = Annotated[str, Depends(get_tenant_id)]
ClientIpDep = Annotated[str, Depends(get_client_ip)]
ChatLimiterDep = Annotated[SlidingWindowRateLimiter, Depends(get_chat_rate_limiter)]
LookupLimiterDep = Annotated[
    SlidingWindowRateLimiter, Depends(get_lookup_rate_limiter)
]
EngineDep = Annotated[ConversationEngine, Depends(get_engine_client)]

CONFIG_CACHE_CONTROL = "public, max-age=300"


async def enforce_rate_limit(
    limiter: SlidingWindowRateLimiter, key: str, limit: int | None = None
) -> None:
    """Raise RateLimitedError when ``key`` is over its window threshold."""
    if await limiter.admit(key, limit):
        return
    retry_after = await limiter.retry_after(key, limit)
    raise RateLimitedError(retry_after_ms=max(math.ceil(retry_after * 1000), 1))


@router.post("/start", response_model=ApiResponse[StartChatResponse])
async def start_chat(
    request: Request,
    adapter: ChatAdapterDep,
    tenant_id: TenantDep,
    client_ip: ClientIpDep,
    limiter: LookupLimiterDep,
    body: StartChatRequest | None = None,
) -> dict:
    """Open a chat session and return the greeting."""
    await enforce_rate_limit(limiter, client_ip)
    page_metadata = body.metadata if body and body.metadata else None
    metadata = SessionMetadata(
        user_agent=request.headers.get("user-agent"),
        referrer=(page_metadata.referrer if page_metadata else None)
        or request.headers.get("referer"),
        page=page_metadata.page if page_metadata else None,
    )
    result = await adapter.start_chat(tenant_id=tenant_id, metadata=metadata)
    return success_response(result)


@router.post("/message", response_model=ApiResponse[ProcessMessageResponse])
async def send_message(
    request: MessageRequest,
    adapter: ChatAdapterDep,
    tenant_id: TenantDep,
    limiter: ChatLimiterDep,
) -> dict:
    """Process one visitor turn.

    Unknown, expired or ended sessions answer 404 with ``should_restart``.
    """
    await enforce_rate_limit(
        limiter,
        f"{tenant_id}:{request.session_id}",
        settings.rate_limit.chat_limit_for(tenant_id),
    )
    result = await adapter.process_message(
        request.session_id, request.text, tenant_id=tenant_id
    )
    if result.should_restart:
        raise SessionNotFoundError()
    return success_response(result)


@router.get("/session", response_model=ApiResponse[SessionHistoryResponse])
async def get_session(
    adapter: ChatAdapterDep,
    tenant_id: TenantDep,
    client_ip: ClientIpDep,
    limiter: LookupLimiterDep,
    session_id: Annotated[str, Query(min_length=1, max_length=64)],
) -> dict:
    """Session state and history, used to restore the widget after a reload."""
    await enforce_rate_limit(limiter, client_ip)
    session = await adapter.get_session(session_id, tenant_id=tenant_id)
    if session is None:
        raise SessionNotFoundError()
    return success_response(
        SessionHistoryResponse(
            session_id=session.session_id,
            status=session.status,
            conversation_state=session.conversation_state,
            messages=session.messages,
            visitor_name=session.visitor_name,
        )
    )


@router.post("/end", response_model=ApiResponse[EndChatResponse])
async def end_chat(
    request: EndChatRequest,
    adapter: ChatAdapterDep,
    tenant_id: TenantDep,
) -> dict:
    """End a chat session. Ending twice is not an error."""
    ended = await adapter.end_chat(request.session_id, tenant_id=tenant_id)
    return success_response(EndChatResponse(ended=ended))


@router.get("/config", response_model=ApiResponse[WidgetConfigResponse])
async def get_widget_config(tenant_id: TenantDep, response: Response) -> dict:
    """Client-safe widget configuration."""
    business = settings.business
    response.headers["Cache-Control"] = CONFIG_CACHE_CONTROL
    return success_response(
        WidgetConfigResponse(
            tenant_id=tenant_id,
            business_name=business.name,
            initial_quick_replies=list(business.initial_quick_replies),
            business_info=BusinessInfo(
                phone=business.fallback_phone,
                hours=business.hours,
                service_area=business.service_area,
            ),
            session_timeout_seconds=settings.session.timeout_seconds,
            max_message_length=settings.session.max_message_length,
        )
    )


@router.get("/health", response_model=ApiResponse[ChatHealthResponse])
async def chat_health(
    adapter: ChatAdapterDep,
    engine: EngineDep,
    tenant_id: TenantDep,
) -> dict:
    """Engine status and active session count for the tenant."""
    engine_health = await engine.health()
    active_sessions = await adapter.get_active_session_count(tenant_id)
    return success_response(
        ChatHealthResponse(
            status="ok" if engine_health.is_ok else "degraded",
            engine=engine_health.status,
            active_sessions=active_sessions,
            tenant=tenant_id,
            timestamp=datetime.now(UTC),
        )
    )
