"""
Dashboard route: classifies the caller's attention feed together with the
decision-engine stream supplied in the request body.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import auth_dependency
from app.features.attention.services import (
    AttentionStateUnavailableError,
    AttentionUserMissingError,
    attention_service,
)
from app.features.dashboard.classifier import classify, group_items, restrict_to_urgent
from app.infrastructure.observability.logging import bind_request_user, get_logger
from app.models.api.dashboard_request import DashboardRequest
from app.models.api.dashboard_response import (
    BandSummaryResponse,
    DashboardGroupResponse,
    DashboardItemResponse,
    DashboardResponse,
    TodaySummaryResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.post("", response_model=DashboardResponse)
async def build_dashboard(request: DashboardRequest, claims: dict = Depends(auth_dependency)):
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    bind_request_user(user_id)

    now = datetime.now(UTC)
    try:
        feed = await attention_service.run(user_id, request.window_hours, now=now)
    except AttentionUserMissingError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except AttentionStateUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Attention state is temporarily unavailable",
        )

    dashboard = classify(
        feed.items(),
        [item.to_domain() for item in request.decision_items],
        portfolio_filter=request.portfolio_id,
        now=now,
    )

    if request.urgent_only:
        dashboard = restrict_to_urgent(dashboard)
    now_band, soon_band, aware_band = dashboard.now, dashboard.soon, dashboard.aware

    visible = now_band + soon_band + aware_band
    logger.info(
        "Dashboard classified",
        user_id=user_id,
        now=len(now_band),
        soon=len(soon_band),
        aware=len(aware_band),
    )

    return DashboardResponse(
        generated_at=now,
        now=[DashboardItemResponse.from_domain(i) for i in now_band],
        soon=[DashboardItemResponse.from_domain(i) for i in soon_band],
        aware=[DashboardItemResponse.from_domain(i) for i in aware_band],
        today=TodaySummaryResponse.from_domain(dashboard.summaries.today),
        band_summaries=[
            BandSummaryResponse.from_domain(s) for s in dashboard.summaries.bands.values()
        ],
        groups=[DashboardGroupResponse.from_domain(g) for g in group_items(visible, request.group_by)],
        failed_collectors=list(feed.failed_collectors),
    )
