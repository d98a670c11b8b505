"""
Video Service.

Publishing, reading, updating and deleting videos. Reads go through the
`Projector` so every video document carries its owner's public sub-profile,
its like count and the viewer's own like state. Binary assets go to the
configured `AssetStore`; only their URLs are persisted.

Asset bookkeeping on partial failure: if the thumbnail upload fails after the
video upload succeeded, or the database write fails after both uploads, the
assets already uploaded are removed again. Removing replaced or deleted
assets happens after the database write and is logged, not raised, when it
fails.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import AssetStoreError, NotFoundError, ValidationError
from core.logging_config import get_logger, log_function_call
from core.models import (
    Comment,
    Like,
    PlaylistVideo,
    Subscription,
    Video,
    WatchHistoryEntry,
)
from core.projection import Projector
from core.validation import InputValidator, PageRequest
from providers.asset_store import AssetStore, StoredAsset
from services.guards import ensure_owner, get_or_404

logger = get_logger(__name__)

VIDEO_FIELDS: Dict[str, str] = {
    "id": "id",
    "videoFile": "video_file",
    "thumbnail": "thumbnail",
    "title": "title",
    "description": "description",
    "duration": "duration",
    "views": "views",
    "isPublished": "is_published",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

VIDEO_SORTABLE: Dict[str, str] = {
    "createdAt": "created_at",
    "views": "views",
    "duration": "duration",
    "title": "title",
}


def video_projector(viewer_id: Optional[str], sortable: Optional[Dict[str, str]] = None) -> Projector:
    """Video documents with owner sub-profile, like count and viewer like state"""
    return (
        Projector(Video, VIDEO_FIELDS, sortable)
        .lookup_owner(Video.owner_id)
        .count("likesCount", Like, Like.video_id)
        .viewer_flag("isLiked", Like, Like.video_id, Like.liked_by, viewer_id)
    )


class VideoService:
    """Video operations for one request"""

    def __init__(self, session: AsyncSession, asset_store: Optional[AssetStore] = None):
        self.session = session
        self.asset_store = asset_store

    @log_function_call(logger)
    async def list_videos(
        self,
        viewer_id: Optional[str],
        page_request: PageRequest,
        query: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Published videos, optionally narrowed to one owner and a free-text
        query over title and description. Owners also see their own
        unpublished videos when listing themselves.
        """
        projector = video_projector(viewer_id, VIDEO_SORTABLE)

        if user_id is not None:
            InputValidator.validate_id(user_id, "userId")
            projector.match(Video.owner_id == user_id)
        if user_id is None or user_id != viewer_id:
            projector.match(Video.is_published.is_(True))

        if query and query.strip():
            needle = query.strip()
            projector.match(
                or_(
                    Video.title.icontains(needle, autoescape=True),
                    Video.description.icontains(needle, autoescape=True),
                )
            )

        projector.sort(page_request.sort_by, page_request.sort_type)
        return await projector.paginate(self.session, page_request)

    @log_function_call(logger)
    async def get_video(self, video_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
        InputValidator.validate_id(video_id, "videoId")

        doc = await (
            video_projector(viewer_id)
            .match(Video.id == video_id)
            .count(
                "owner.subscribersCount",
                Subscription,
                Subscription.channel_id,
                local=Video.owner_id,
            )
            .viewer_flag(
                "owner.isSubscribed",
                Subscription,
                Subscription.channel_id,
                Subscription.subscriber_id,
                viewer_id,
                local=Video.owner_id,
            )
            .count("commentsCount", Comment, Comment.video_id)
            .first(self.session)
        )

        if doc is None:
            raise NotFoundError("Video", video_id)
        owner = doc.get("owner") or {}
        if not doc["isPublished"] and owner.get("id") != viewer_id:
            raise NotFoundError("Video", video_id)
        return doc

    async def record_view(self, video_id: str, viewer_id: Optional[str]):
        """Count one view and add the video to the viewer's watch history"""
        await self.session.execute(
            update(Video).where(Video.id == video_id).values(views=Video.views + 1)
        )
        await self.session.commit()

        if viewer_id is None:
            return
        if await self.session.get(WatchHistoryEntry, (viewer_id, video_id)) is not None:
            return
        self.session.add(WatchHistoryEntry(user_id=viewer_id, video_id=video_id))
        try:
            await self.session.commit()
        except IntegrityError:
            # Concurrent fetch by the same viewer already added the entry
            await self.session.rollback()
            logger.debug(f"Video {video_id} already in history of {viewer_id}")

    @log_function_call(logger)
    async def publish_video(
        self,
        owner_id: str,
        title: Optional[str],
        description: Optional[str],
        video_path: Optional[Path],
        thumbnail_path: Optional[Path],
    ) -> Dict[str, Any]:
        title = InputValidator.validate_content(title, "title", max_length=255)
        description = InputValidator.validate_content(description, "description")
        if video_path is None or thumbnail_path is None:
            raise ValidationError(
                "videoFile and thumbnail files are required",
                errors=[
                    {"field": name, "reason": "missing file"}
                    for name, path in (("videoFile", video_path), ("thumbnail", thumbnail_path))
                    if path is None
                ],
            )

        video_asset = await self.asset_store.store(video_path)
        try:
            thumbnail_asset = await self.asset_store.store(thumbnail_path)
        except AssetStoreError:
            await self._discard_assets(video_asset)
            raise

        video = Video(
            video_file=video_asset.url,
            thumbnail=thumbnail_asset.url,
            title=title,
            description=description,
            duration=video_asset.duration or 0,
            views=0,
            is_published=True,
            owner_id=owner_id,
        )
        self.session.add(video)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            await self._discard_assets(video_asset, thumbnail_asset)
            raise

        logger.info(f"Video {video.id} published by {owner_id}")
        return await self.get_video(video.id, owner_id)

    @log_function_call(logger)
    async def update_video(
        self,
        video_id: str,
        caller_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail_path: Optional[Path] = None,
    ) -> Dict[str, Any]:
        video = await get_or_404(self.session, Video, video_id, "Video", "videoId")
        ensure_owner(video, caller_id, "update")

        title = InputValidator.validate_optional_text(title, "title", max_length=255)
        description = InputValidator.validate_optional_text(description, "description")
        if title is None and description is None and thumbnail_path is None:
            raise ValidationError("Provide a title, description or thumbnail to update")

        new_thumbnail: Optional[StoredAsset] = None
        old_thumbnail: Optional[str] = None
        if thumbnail_path is not None:
            new_thumbnail = await self.asset_store.store(thumbnail_path)
            old_thumbnail = video.thumbnail
            video.thumbnail = new_thumbnail.url
        if title is not None:
            video.title = title
        if description is not None:
            video.description = description

        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            if new_thumbnail is not None:
                await self._discard_assets(new_thumbnail)
            raise

        if old_thumbnail:
            await self._remove_url(old_thumbnail, "image")
        return await self.get_video(video_id, caller_id)

    @log_function_call(logger)
    async def delete_video(self, video_id: str, caller_id: str):
        video = await get_or_404(self.session, Video, video_id, "Video", "videoId")
        ensure_owner(video, caller_id, "delete")
        video_file, thumbnail = video.video_file, video.thumbnail

        comment_ids = select(Comment.id).where(Comment.video_id == video_id)
        await self.session.execute(
            delete(Like).where(
                or_(Like.video_id == video_id, Like.comment_id.in_(comment_ids))
            )
        )
        await self.session.execute(delete(Comment).where(Comment.video_id == video_id))
        await self.session.execute(
            delete(PlaylistVideo).where(PlaylistVideo.video_id == video_id)
        )
        await self.session.execute(
            delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id == video_id)
        )
        await self.session.delete(video)
        await self.session.commit()
        logger.info(f"Video {video_id} deleted by {caller_id}")

        await self._remove_url(video_file, "video")
        await self._remove_url(thumbnail, "image")

    @log_function_call(logger)
    async def toggle_publish_status(self, video_id: str, caller_id: str) -> Dict[str, Any]:
        video = await get_or_404(self.session, Video, video_id, "Video", "videoId")
        ensure_owner(video, caller_id, "update")
        video.is_published = not video.is_published
        await self.session.commit()
        return {"id": video.id, "isPublished": video.is_published}

    async def _discard_assets(self, *assets: StoredAsset):
        for asset in assets:
            try:
                await self.asset_store.delete(asset.public_id, asset.resource_type)
            except AssetStoreError as e:
                logger.warning(f"Could not discard orphaned asset {asset.public_id}: {e.reason}")

    async def _remove_url(self, url: Optional[str], resource_type: str):
        if self.asset_store is None or not url:
            return
        try:
            await self.asset_store.delete_url(url, resource_type)
        except (AssetStoreError, ValueError) as e:
            logger.warning(f"Could not remove asset {url}: {e}")


async def record_view_in_background(
    session_factory: async_sessionmaker, video_id: str, viewer_id: Optional[str]
):
    """
    View side effects of a video fetch, run after the response is built.
    Failures are logged and never reach the caller.
    """
    try:
        async with session_factory() as session:
            await VideoService(session).record_view(video_id, viewer_id)
    except SQLAlchemyError as e:
        logger.warning(
            f"Recording view of video {video_id} failed: {e}",
            extra={"video_id": video_id, "viewer_id": viewer_id},
            exc_info=True,
        )


__all__ = [
    "VIDEO_FIELDS",
    "VIDEO_SORTABLE",
    "VideoService",
    "record_view_in_background",
    "video_projector",
]
