"""OpenAI-compatible proxy endpoints — one route per addressing mode.

``/proxy/{provider}/chat/completions`` uses the default agent of the
calling client (derived from its User-Agent); the ``{agent_id}`` variant
addresses an existing agent explicitly.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, Depends, Header
from fastapi.responses import StreamingResponse

from gateway.application.interfaces import ChatProvider
from gateway.application.schemas import ChatCompletionRequest
from gateway.application.services import ChatCompletionService
from gateway.application.services.chat_completion_service import SSE_DONE, error_body, format_sse
from gateway.infrastructure.dependencies import get_chat_completion_service, get_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proxy", tags=["Proxy"])

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _bearer_token(authorization: str | None) -> str:
    """Credential passed through to the upstream provider as-is."""
    if not authorization:
        return ""
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization.strip()


@router.post("/{provider}/chat/completions")
async def proxy_chat_completion(
    request: ChatCompletionRequest,
    provider: ChatProvider = Depends(get_provider),
    service: ChatCompletionService = Depends(get_chat_completion_service),
    authorization: str | None = Header(default=None),
    user_agent: str | None = Header(default=None),
    x_gateway_agent_id: str | None = Header(default=None),
    x_gateway_user_id: str | None = Header(default=None),
):
    """Proxy a chat completion on behalf of the client's default agent."""
    return await _proxy(
        request,
        provider=provider,
        service=service,
        agent_id=None,
        authorization=authorization,
        user_agent=user_agent,
        external_agent_id=x_gateway_agent_id,
        user_id=x_gateway_user_id,
    )


@router.post("/{provider}/{agent_id}/chat/completions")
async def proxy_agent_chat_completion(
    agent_id: str,
    request: ChatCompletionRequest,
    provider: ChatProvider = Depends(get_provider),
    service: ChatCompletionService = Depends(get_chat_completion_service),
    authorization: str | None = Header(default=None),
    user_agent: str | None = Header(default=None),
    x_gateway_agent_id: str | None = Header(default=None),
    x_gateway_user_id: str | None = Header(default=None),
):
    """Proxy a chat completion for an explicitly addressed agent."""
    return await _proxy(
        request,
        provider=provider,
        service=service,
        agent_id=agent_id,
        authorization=authorization,
        user_agent=user_agent,
        external_agent_id=x_gateway_agent_id,
        user_id=x_gateway_user_id,
    )


async def _proxy(
    request: ChatCompletionRequest,
    *,
    provider: ChatProvider,
    service: ChatCompletionService,
    agent_id: str | None,
    authorization: str | None,
    user_agent: str | None,
    external_agent_id: str | None,
    user_id: str | None,
):
    # AgentNotFoundError / LimitExceededError / UpstreamError are turned into
    # error bodies by the handlers registered in create_app().
    agent = await service.resolve_agent(agent_id, user_agent)
    await service.check_limits(agent)

    api_key = _bearer_token(authorization)
    logger.info(
        "Proxy request: provider=%s agent=%s model=%s stream=%s messages=%d tools=%d",
        provider.provider_name,
        agent.id,
        request.model,
        bool(request.stream),
        len(request.messages),
        len(request.tools or []),
    )

    if not request.stream:
        return await service.complete(
            request,
            provider=provider,
            agent=agent,
            api_key=api_key,
            external_agent_id=external_agent_id,
            user_id=user_id,
        )

    frames = service.stream(
        request,
        provider=provider,
        agent=agent,
        api_key=api_key,
        external_agent_id=external_agent_id,
        user_id=user_id,
    )
    # Pull the first frame now so that a failure before anything was sent
    # still becomes a regular HTTP error response.
    try:
        first = await anext(frames)
    except BaseException:
        await frames.aclose()
        raise

    return StreamingResponse(
        _event_stream(first, frames),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


async def _event_stream(first: str, frames: AsyncIterator[str]) -> AsyncIterator[str]:
    async with aclosing(frames):
        yield first
        try:
            async for frame in frames:
                yield frame
        except Exception:
            logger.exception("Streaming proxy failed after the response started")
            yield format_sse(error_body("Internal gateway error", "internal_error"))
            yield SSE_DONE
