"""
Like Service.

A like targets exactly one video, comment or tweet. Each target kind has its
own toggle over `(target, liked_by)`; the response reports the state the
toggle ended in.
"""

from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger, log_function_call
from core.models import Comment, Like, Tweet, Video
from core.validation import PageRequest
from services.guards import get_or_404
from services.toggle import RelationToggle
from services.video_service import video_projector

logger = get_logger(__name__)


class LikeService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _toggle(self, target_field: str, target_id: str, viewer_id: str) -> Dict[str, bool]:
        state = await RelationToggle(self.session, Like, target_field, "liked_by").toggle(
            target_id, viewer_id
        )
        return {"isLiked": state.is_present}

    @log_function_call(logger)
    async def toggle_video_like(self, video_id: str, viewer_id: str) -> Dict[str, bool]:
        await get_or_404(self.session, Video, video_id, "Video", "videoId")
        return await self._toggle("video_id", video_id, viewer_id)

    @log_function_call(logger)
    async def toggle_comment_like(self, comment_id: str, viewer_id: str) -> Dict[str, bool]:
        await get_or_404(self.session, Comment, comment_id, "Comment", "commentId")
        return await self._toggle("comment_id", comment_id, viewer_id)

    @log_function_call(logger)
    async def toggle_tweet_like(self, tweet_id: str, viewer_id: str) -> Dict[str, bool]:
        await get_or_404(self.session, Tweet, tweet_id, "Tweet", "tweetId")
        return await self._toggle("tweet_id", tweet_id, viewer_id)

    @log_function_call(logger)
    async def liked_videos(self, viewer_id: str, page_request: PageRequest) -> Dict[str, Any]:
        """Published videos the viewer likes, most recently liked first"""
        liked_ids = select(Like.video_id).where(
            Like.liked_by == viewer_id, Like.video_id.is_not(None)
        )
        liked_at = (
            select(func.max(Like.created_at))
            .where(Like.video_id == Video.id, Like.liked_by == viewer_id)
            .correlate(Video)
            .scalar_subquery()
        )
        return await (
            video_projector(viewer_id)
            .match(Video.is_published.is_(True), Video.id.in_(liked_ids))
            .derive("likedAt", liked_at)
            .sort("likedAt", "desc")
            .paginate(self.session, page_request)
        )
