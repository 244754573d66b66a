"""
Attention feed routes.

Reads go through the caller-side feed cache; every successful mutation
invalidates it so the next read re-runs aggregation.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.verify import auth_dependency
from app.config import settings
from app.features.attention.repository.resolution_repository import (
    ResolutionError,
    ResolutionRepository,
    ResolutionTargetNotFoundError,
)
from app.features.attention.repository.state_repository import (
    AttentionStateError,
    AttentionStateRepository,
    StateDecision,
)
from app.features.attention.services import (
    AttentionStateUnavailableError,
    AttentionUserMissingError,
    attention_feed_cache,
    attention_service,
)
from app.infrastructure.observability.logging import bind_request_user, get_logger
from app.models.api.attention_request import (
    AttentionTargetRequest,
    DeferTradeRequest,
    DismissWithReasonRequest,
    SnoozeRequest,
)
from app.models.api.attention_response import (
    ActionResponse,
    AttentionCountsOnlyResponse,
    AttentionFeedResponse,
    DeferTradeResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/attention", tags=["attention"])


def _require_user(claims: dict) -> str:
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    bind_request_user(user_id)
    return user_id


async def load_feed(user_id: str, window_hours: int) -> AttentionFeedResponse:
    """Serve from cache when the state version still matches, else run the pipeline."""
    version = await attention_feed_cache.state_version(user_id)
    cached = await attention_feed_cache.get(user_id, window_hours, version)
    if cached:
        return AttentionFeedResponse.model_validate_json(cached)

    try:
        feed = await attention_service.run(user_id, window_hours)
    except AttentionUserMissingError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except AttentionStateUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Attention state is temporarily unavailable",
        )

    response = AttentionFeedResponse.from_domain(feed)
    await attention_feed_cache.set(user_id, window_hours, version, response.model_dump_json())
    return response


@router.get("", response_model=AttentionFeedResponse)
async def get_attention_feed(
    window_hours: int = Query(
        default=settings.ATTENTION_DEFAULT_WINDOW_HOURS,
        ge=1,
        le=settings.ATTENTION_MAX_WINDOW_HOURS,
        description="Trailing window in hours",
    ),
    claims: dict = Depends(auth_dependency),
):
    """Sectioned, scored and deduplicated attention feed for the caller."""
    user_id = _require_user(claims)
    return await load_feed(user_id, window_hours)


@router.get("/counts", response_model=AttentionCountsOnlyResponse)
async def get_attention_counts(claims: dict = Depends(auth_dependency)):
    """Per-section counts for the default window."""
    user_id = _require_user(claims)
    window_hours = settings.ATTENTION_DEFAULT_WINDOW_HOURS
    feed = await load_feed(user_id, window_hours)
    return AttentionCountsOnlyResponse(window_hours=window_hours, counts=feed.counts)


# ---------------------------------------------------------------------------
# State decisions
# ---------------------------------------------------------------------------


async def _record(user_id: str, attention_id: str, decision: StateDecision) -> ActionResponse:
    try:
        await AttentionStateRepository.write_decision(user_id, attention_id, decision)
    except AttentionStateError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    await attention_feed_cache.invalidate(user_id)
    return ActionResponse()


@router.post("/ack", response_model=ActionResponse)
async def acknowledge(request: AttentionTargetRequest, claims: dict = Depends(auth_dependency)):
    user_id = _require_user(claims)
    return await _record(user_id, request.attention_id, StateDecision.acknowledge())


@router.post("/snooze", response_model=ActionResponse)
async def snooze(request: SnoozeRequest, claims: dict = Depends(auth_dependency)):
    user_id = _require_user(claims)
    until = request.resolve_until(datetime.now(UTC))
    return await _record(user_id, request.attention_id, StateDecision.snooze(until))


@router.post("/dismiss", response_model=ActionResponse)
async def dismiss(request: AttentionTargetRequest, claims: dict = Depends(auth_dependency)):
    user_id = _require_user(claims)
    return await _record(user_id, request.attention_id, StateDecision.dismiss())


@router.post("/dismiss-with-reason", response_model=ActionResponse)
async def dismiss_with_reason(
    request: DismissWithReasonRequest, claims: dict = Depends(auth_dependency)
):
    user_id = _require_user(claims)
    decision = StateDecision.dismiss_with_reason(request.reason, request.note)
    return await _record(user_id, request.attention_id, decision)


@router.post("/mark-read", response_model=ActionResponse)
async def mark_read(request: AttentionTargetRequest, claims: dict = Depends(auth_dependency)):
    user_id = _require_user(claims)
    return await _record(user_id, request.attention_id, StateDecision.mark_read())


# ---------------------------------------------------------------------------
# Resolution actions
# ---------------------------------------------------------------------------


def _resolution_failed(e: ResolutionError) -> HTTPException:
    if isinstance(e, ResolutionTargetNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("/deliverables/{deliverable_id}/done", response_model=ActionResponse)
async def mark_deliverable_done(deliverable_id: str, claims: dict = Depends(auth_dependency)):
    user_id = _require_user(claims)
    try:
        await ResolutionRepository.mark_deliverable_done(deliverable_id, user_id)
    except ResolutionError as e:
        raise _resolution_failed(e)

    await attention_feed_cache.invalidate(user_id)
    return ActionResponse()


@router.post("/trades/{trade_id}/approve", response_model=ActionResponse)
async def approve_trade(trade_id: str, claims: dict = Depends(auth_dependency)):
    user_id = _require_user(claims)
    try:
        await ResolutionRepository.approve_trade(trade_id, user_id)
    except ResolutionError as e:
        raise _resolution_failed(e)

    await attention_feed_cache.invalidate(user_id)
    return ActionResponse()


@router.post("/trades/{trade_id}/reject", response_model=ActionResponse)
async def reject_trade(trade_id: str, claims: dict = Depends(auth_dependency)):
    user_id = _require_user(claims)
    try:
        await ResolutionRepository.reject_trade(trade_id, user_id)
    except ResolutionError as e:
        raise _resolution_failed(e)

    await attention_feed_cache.invalidate(user_id)
    return ActionResponse()


@router.post("/trades/{trade_id}/defer", response_model=DeferTradeResponse)
async def defer_trade(
    trade_id: str,
    request: DeferTradeRequest | None = None,
    claims: dict = Depends(auth_dependency),
):
    user_id = _require_user(claims)
    hours = request.hours if request else DeferTradeRequest().hours
    try:
        revisit_at = await ResolutionRepository.defer_trade(trade_id, hours)
    except ResolutionError as e:
        raise _resolution_failed(e)

    await attention_feed_cache.invalidate(user_id)
    logger.info("Trade deferred", user_id=user_id, trade_id=trade_id, hours=hours)
    return DeferTradeResponse(revisit_at=revisit_at)
