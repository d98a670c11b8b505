"""
Comment Service.

Comments belong to one video and one owner. Listings are newest first and
every comment carries its owner's sub-profile, its like count and whether the
viewer liked it. Deleting a comment also removes the likes on it.
"""

from typing import Any, Dict, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from core.logging_config import get_logger, log_function_call
from core.models import Comment, Like, Video
from core.projection import Projector
from core.validation import InputValidator, PageRequest
from services.guards import ensure_owner, get_or_404

logger = get_logger(__name__)

COMMENT_FIELDS: Dict[str, str] = {
    "id": "id",
    "content": "content",
    "videoId": "video_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def comment_projector(viewer_id: Optional[str]) -> Projector:
    return (
        Projector(Comment, COMMENT_FIELDS, {"createdAt": "created_at"})
        .lookup_owner(Comment.owner_id)
        .count("likesCount", Like, Like.comment_id)
        .viewer_flag("isLiked", Like, Like.comment_id, Like.liked_by, viewer_id)
    )


class CommentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    @log_function_call(logger)
    async def list_comments(
        self, video_id: str, viewer_id: Optional[str], page_request: PageRequest
    ) -> Dict[str, Any]:
        await get_or_404(self.session, Video, video_id, "Video", "videoId")
        return await (
            comment_projector(viewer_id)
            .match(Comment.video_id == video_id)
            .sort(page_request.sort_by, page_request.sort_type)
            .paginate(self.session, page_request)
        )

    async def get_comment(self, comment_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
        InputValidator.validate_id(comment_id, "commentId")
        doc = await comment_projector(viewer_id).match(Comment.id == comment_id).first(self.session)
        if doc is None:
            raise NotFoundError("Comment", comment_id)
        return doc

    @log_function_call(logger)
    async def add_comment(self, video_id: str, owner_id: str, content: Optional[str]) -> Dict[str, Any]:
        await get_or_404(self.session, Video, video_id, "Video", "videoId")
        content = InputValidator.validate_content(content)

        comment = Comment(content=content, video_id=video_id, owner_id=owner_id)
        self.session.add(comment)
        await self.session.commit()
        logger.info(f"Comment {comment.id} added to video {video_id}")
        return await self.get_comment(comment.id, owner_id)

    @log_function_call(logger)
    async def update_comment(self, comment_id: str, caller_id: str, content: Optional[str]) -> Dict[str, Any]:
        comment = await get_or_404(self.session, Comment, comment_id, "Comment", "commentId")
        ensure_owner(comment, caller_id, "update")
        comment.content = InputValidator.validate_content(content)
        await self.session.commit()
        return await self.get_comment(comment_id, caller_id)

    @log_function_call(logger)
    async def delete_comment(self, comment_id: str, caller_id: str):
        comment = await get_or_404(self.session, Comment, comment_id, "Comment", "commentId")
        ensure_owner(comment, caller_id, "delete")
        await self.session.execute(delete(Like).where(Like.comment_id == comment_id))
        await self.session.delete(comment)
        await self.session.commit()
        logger.info(f"Comment {comment_id} deleted by {caller_id}")
