"""
Subscription Service.

A subscription links a subscriber to a channel (both users). Subscribing to
yourself is refused before anything is read or written. Subscriber and
channel listings return user sub-profiles with the user's own subscriber
count and whether the viewer subscribes to them, most recent subscription
first.
"""

from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ForbiddenError
from core.logging_config import get_logger, log_function_call
from core.models import Subscription, User
from core.projection import OWNER_PROFILE_FIELDS, Projector
from core.validation import InputValidator, PageRequest
from services.guards import get_or_404
from services.toggle import RelationToggle

logger = get_logger(__name__)


def profile_projector(viewer_id: Optional[str]) -> Projector:
    """User sub-profiles with subscriber count and viewer subscription state"""
    return (
        Projector(User, OWNER_PROFILE_FIELDS)
        .count("subscribersCount", Subscription, Subscription.channel_id)
        .viewer_flag(
            "isSubscribed",
            Subscription,
            Subscription.channel_id,
            Subscription.subscriber_id,
            viewer_id,
        )
    )


class SubscriptionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    @log_function_call(logger)
    async def toggle_subscription(self, channel_id: str, viewer_id: str) -> Dict[str, bool]:
        InputValidator.validate_id(channel_id, "channelId")
        if channel_id == viewer_id:
            raise ForbiddenError("You cannot subscribe to your own channel")
        await get_or_404(self.session, User, channel_id, "Channel", "channelId")

        state = await RelationToggle(
            self.session, Subscription, "channel_id", "subscriber_id"
        ).toggle(channel_id, viewer_id)
        return {"isSubscribed": state.is_present}

    @log_function_call(logger)
    async def channel_subscribers(
        self, channel_id: str, viewer_id: Optional[str], page_request: PageRequest
    ) -> Dict[str, Any]:
        await get_or_404(self.session, User, channel_id, "Channel", "channelId")
        subscriber_ids = select(Subscription.subscriber_id).where(
            Subscription.channel_id == channel_id
        )
        subscribed_at = (
            select(func.max(Subscription.created_at))
            .where(Subscription.channel_id == channel_id, Subscription.subscriber_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        return await (
            profile_projector(viewer_id)
            .match(User.id.in_(subscriber_ids))
            .derive("subscribedAt", subscribed_at)
            .sort("subscribedAt", "desc")
            .paginate(self.session, page_request)
        )

    @log_function_call(logger)
    async def subscribed_channels(
        self, subscriber_id: str, viewer_id: Optional[str], page_request: PageRequest
    ) -> Dict[str, Any]:
        await get_or_404(self.session, User, subscriber_id, "User", "subscriberId")
        channel_ids = select(Subscription.channel_id).where(
            Subscription.subscriber_id == subscriber_id
        )
        subscribed_at = (
            select(func.max(Subscription.created_at))
            .where(Subscription.subscriber_id == subscriber_id, Subscription.channel_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        return await (
            profile_projector(viewer_id)
            .match(User.id.in_(channel_ids))
            .derive("subscribedAt", subscribed_at)
            .sort("subscribedAt", "desc")
            .paginate(self.session, page_request)
        )
