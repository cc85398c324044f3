"""
Activity tracker - ingestion path for activity events.

Validated requests are written to the event store, then the owning user's
engagement score is updated. The event write is the operation of record:
it is committed before scoring runs, so a scoring failure can never roll it
back.
"""
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from user_agents import parse as parse_ua

from storefront.core.logging import get_logger
from storefront.models.activity import ActivityEvent
from storefront.repositories.activity import ActivityRepository
from storefront.schemas.activity import DeviceInfo, TrackActivityRequest
from storefront.services.engagement import EngagementScorer

logger = get_logger(__name__)


def parse_user_agent(user_agent: Optional[str]) -> dict[str, Any]:
    """
    Derive device type, browser and OS from a User-Agent string.

    Returns an empty dict when there is nothing to parse.
    """
    if not user_agent:
        return {}

    try:
        ua = parse_ua(user_agent)
    except Exception as e:
        logger.warning("User agent parse failed", error=str(e))
        return {}

    if ua.is_mobile:
        device_type = "mobile"
    elif ua.is_tablet:
        device_type = "tablet"
    elif ua.is_pc:
        device_type = "desktop"
    elif ua.is_bot:
        device_type = "bot"
    else:
        device_type = "unknown"

    return {
        "deviceType": device_type,
        "browser": ua.browser.family,
        "os": ua.os.family,
    }


def enrich_device_info(
    device_info: DeviceInfo,
    user_agent: Optional[str] = None,
    client_ip: Optional[str] = None,
) -> dict[str, Any]:
    """
    Fill device fields the client left out from the request itself.

    Client-reported values always win over server-derived ones.
    """
    reported = device_info.model_dump(by_alias=True, exclude_none=True)

    derived: dict[str, Any] = {}
    effective_ua = reported.get("userAgent") or user_agent
    if effective_ua:
        derived["userAgent"] = effective_ua
        derived.update(parse_user_agent(effective_ua))
    if client_ip:
        derived["ipAddress"] = client_ip

    return {**derived, **reported}


class ActivityTracker:
    """Records activity events and triggers engagement scoring."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.events = ActivityRepository(session)
        self.scorer = EngagementScorer(session)

    async def record(
        self,
        request: TrackActivityRequest,
        *,
        user_agent: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> ActivityEvent:
        """Persist one event and, when it belongs to a user, rescore that user."""
        event = await self.events.record(
            {
                "user_id": request.user_id,
                "session_id": request.session_id,
                "activity_type": request.activity_type.value,
                "activity_data": request.activity_data.model_dump(
                    mode="json", by_alias=True, exclude_none=True
                ),
                "device_info": enrich_device_info(request.device_info, user_agent, client_ip),
                "location": request.location.model_dump(by_alias=True, exclude_none=True),
                "conversion_value": request.conversion_value,
                "conversion_type": request.conversion_type.value if request.conversion_type else None,
                "funnel_stage": request.funnel_stage.value if request.funnel_stage else None,
            }
        )
        await self.session.commit()
        # Detach so a rollback inside scoring cannot expire the stored event
        self.session.expunge(event)

        logger.info(
            "Activity tracked",
            event_id=str(event.id),
            activity_type=event.activity_type,
            session_id=event.session_id,
            user_id=str(event.user_id) if event.user_id else None,
        )

        if event.user_id is not None:
            await self.scorer.apply_event(
                event.user_id,
                event.activity_type,
                event.conversion_value,
            )

        return event
