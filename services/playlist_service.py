"""
Playlist Service.

A playlist is an owned, ordered, duplicate-free list of videos. Membership
lives in `PlaylistVideo` rows whose `position` keeps insertion order. Read
responses only include published videos and summarise them with
`totalVideos`, `totalViews` and the first video's thumbnail.
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError, ValidationError
from core.logging_config import get_logger, log_function_call
from core.models import Playlist, PlaylistVideo, User, Video
from core.projection import Projector, order_like
from core.validation import InputValidator, PageRequest
from services.guards import ensure_owner, get_or_404
from services.video_service import VIDEO_FIELDS

logger = get_logger(__name__)

PLAYLIST_FIELDS: Dict[str, str] = {
    "id": "id",
    "name": "name",
    "description": "description",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

VIDEO_SUMMARY_FIELDS: Dict[str, str] = {
    "id": "id",
    "title": "title",
    "thumbnail": "thumbnail",
    "videoFile": "video_file",
    "views": "views",
}


def summarise(doc: Dict[str, Any], videos: List[Dict[str, Any]]) -> Dict[str, Any]:
    doc["videos"] = videos
    doc["totalVideos"] = len(videos)
    doc["totalViews"] = sum(video["views"] or 0 for video in videos)
    doc["thumbnail"] = videos[0]["thumbnail"] if videos else None
    return doc


class PlaylistService:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _ordered_video_ids(self, playlist_id: str):
        return (
            select(PlaylistVideo.video_id)
            .where(PlaylistVideo.playlist_id == playlist_id)
            .order_by(PlaylistVideo.position, PlaylistVideo.added_at)
        )

    @log_function_call(logger)
    async def create_playlist(
        self, owner_id: str, name: Optional[str], description: Optional[str] = None
    ) -> Dict[str, Any]:
        name = InputValidator.validate_content(name, "name", max_length=255)
        playlist = Playlist(name=name, description=description or "", owner_id=owner_id)
        self.session.add(playlist)
        await self.session.commit()
        logger.info(f"Playlist {playlist.id} created by {owner_id}")
        return await self.get_playlist(playlist.id)

    @log_function_call(logger)
    async def get_playlist(self, playlist_id: str) -> Dict[str, Any]:
        InputValidator.validate_id(playlist_id, "playlistId")
        doc = await (
            Projector(Playlist, PLAYLIST_FIELDS)
            .match(Playlist.id == playlist_id)
            .lookup_owner(Playlist.owner_id)
            .first(self.session)
        )
        if doc is None:
            raise NotFoundError("Playlist", playlist_id)

        ordered_ids = list((await self.session.execute(self._ordered_video_ids(playlist_id))).scalars())
        videos: List[Dict[str, Any]] = []
        if ordered_ids:
            videos = await (
                Projector(Video, VIDEO_FIELDS)
                .lookup_owner(Video.owner_id)
                .match(Video.is_published.is_(True), Video.id.in_(ordered_ids))
                .all(self.session)
            )
        return summarise(doc, order_like(videos, ordered_ids))

    @log_function_call(logger)
    async def user_playlists(
        self, user_id: str, page_request: PageRequest
    ) -> Dict[str, Any]:
        await get_or_404(self.session, User, user_id, "User", "userId")
        page = await (
            Projector(Playlist, PLAYLIST_FIELDS, {"createdAt": "created_at", "name": "name"})
            .match(Playlist.owner_id == user_id)
            .lookup_owner(Playlist.owner_id)
            .sort(page_request.sort_by, page_request.sort_type)
            .paginate(self.session, page_request)
        )

        playlist_ids = [doc["id"] for doc in page["docs"]]
        by_playlist: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        if playlist_ids:
            columns = [getattr(Video, attr).label(key) for key, attr in VIDEO_SUMMARY_FIELDS.items()]
            stmt = (
                select(PlaylistVideo.playlist_id, *columns)
                .join(Video, Video.id == PlaylistVideo.video_id)
                .where(
                    PlaylistVideo.playlist_id.in_(playlist_ids),
                    Video.is_published.is_(True),
                )
                .order_by(PlaylistVideo.playlist_id, PlaylistVideo.position, PlaylistVideo.added_at)
            )
            for row in (await self.session.execute(stmt)).all():
                mapping = row._mapping
                by_playlist[mapping["playlist_id"]].append(
                    {key: mapping[key] for key in VIDEO_SUMMARY_FIELDS}
                )

        page["docs"] = [summarise(doc, by_playlist[doc["id"]]) for doc in page["docs"]]
        return page

    @log_function_call(logger)
    async def update_playlist(
        self,
        playlist_id: str,
        caller_id: str,
        name: Optional[str],
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        playlist = await get_or_404(self.session, Playlist, playlist_id, "Playlist", "playlistId")
        ensure_owner(playlist, caller_id, "update")
        playlist.name = InputValidator.validate_content(name, "name", max_length=255)
        if description is not None:
            playlist.description = description
        await self.session.commit()
        return await self.get_playlist(playlist_id)

    @log_function_call(logger)
    async def delete_playlist(self, playlist_id: str, caller_id: str):
        playlist = await get_or_404(self.session, Playlist, playlist_id, "Playlist", "playlistId")
        ensure_owner(playlist, caller_id, "delete")
        await self.session.execute(
            delete(PlaylistVideo).where(PlaylistVideo.playlist_id == playlist_id)
        )
        await self.session.delete(playlist)
        await self.session.commit()
        logger.info(f"Playlist {playlist_id} deleted by {caller_id}")

    @log_function_call(logger)
    async def add_video(self, playlist_id: str, video_id: str, caller_id: str) -> Dict[str, Any]:
        playlist = await get_or_404(self.session, Playlist, playlist_id, "Playlist", "playlistId")
        await get_or_404(self.session, Video, video_id, "Video", "videoId")
        ensure_owner(playlist, caller_id, "update")

        if await self.session.get(PlaylistVideo, (playlist_id, video_id)) is not None:
            raise ValidationError("Video already exists in playlist")

        last_position = (
            await self.session.execute(
                select(func.max(PlaylistVideo.position)).where(
                    PlaylistVideo.playlist_id == playlist_id
                )
            )
        ).scalar_one()
        self.session.add(
            PlaylistVideo(
                playlist_id=playlist_id,
                video_id=video_id,
                position=0 if last_position is None else last_position + 1,
            )
        )
        await self.session.commit()
        return await self.get_playlist(playlist_id)

    @log_function_call(logger)
    async def remove_video(self, playlist_id: str, video_id: str, caller_id: str) -> Dict[str, Any]:
        playlist = await get_or_404(self.session, Playlist, playlist_id, "Playlist", "playlistId")
        await get_or_404(self.session, Video, video_id, "Video", "videoId")
        ensure_owner(playlist, caller_id, "update")

        membership = await self.session.get(PlaylistVideo, (playlist_id, video_id))
        if membership is None:
            raise ValidationError("Video does not exist in playlist")
        await self.session.delete(membership)
        await self.session.commit()
        return await self.get_playlist(playlist_id)
