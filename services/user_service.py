"""
User Service.

Read side of user accounts: the viewer's own profile, public channel
profiles looked up by user name, and the viewer's watch history.
"""

from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError, ValidationError
from core.logging_config import get_logger, log_function_call
from core.models import Subscription, User, Video, WatchHistoryEntry
from core.projection import Projector
from core.validation import PageRequest
from services.video_service import VIDEO_FIELDS

logger = get_logger(__name__)

SAFE_USER_FIELDS: Dict[str, str] = {
    "id": "id",
    "userName": "username",
    "email": "email",
    "fullName": "full_name",
    "avatar": "avatar",
    "coverImage": "cover_image",
    "createdAt": "created_at",
}

CHANNEL_FIELDS: Dict[str, str] = {
    "id": "id",
    "fullName": "full_name",
    "userName": "username",
    "avatar": "avatar",
    "coverImage": "cover_image",
}


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def current_user(self, viewer_id: str) -> Dict[str, Any]:
        doc = await Projector(User, SAFE_USER_FIELDS).match(User.id == viewer_id).first(self.session)
        if doc is None:
            raise NotFoundError("User", viewer_id)
        return doc

    @log_function_call(logger)
    async def channel_profile(self, user_name: Optional[str], viewer_id: Optional[str]) -> Dict[str, Any]:
        if user_name is None or not user_name.strip():
            raise ValidationError("username is missing")
        user_name = user_name.strip().lower()

        doc = await (
            Projector(User, CHANNEL_FIELDS)
            .match(func.lower(User.username) == user_name)
            .count("subscribersCount", Subscription, Subscription.channel_id)
            .count("channelsSubscribedToCount", Subscription, Subscription.subscriber_id)
            .viewer_flag(
                "isSubscribed",
                Subscription,
                Subscription.channel_id,
                Subscription.subscriber_id,
                viewer_id,
            )
            .first(self.session)
        )
        if doc is None:
            raise NotFoundError("Channel", user_name)
        return doc

    @log_function_call(logger)
    async def watch_history(self, viewer_id: str, page_request: PageRequest) -> Dict[str, Any]:
        """Videos the viewer watched, most recently added first"""
        history_ids = select(WatchHistoryEntry.video_id).where(WatchHistoryEntry.user_id == viewer_id)
        watched_at = (
            select(WatchHistoryEntry.watched_at)
            .where(WatchHistoryEntry.video_id == Video.id, WatchHistoryEntry.user_id == viewer_id)
            .correlate(Video)
            .scalar_subquery()
        )
        return await (
            Projector(Video, VIDEO_FIELDS)
            .lookup_owner(Video.owner_id)
            .match(Video.id.in_(history_ids))
            .derive("watchedAt", watched_at)
            .sort("watchedAt", "desc")
            .paginate(self.session, page_request)
        )
