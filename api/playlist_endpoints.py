"""
Playlist Endpoints.

Endpoints Provided:
- `POST /playlists`: create a playlist.
- `GET /playlists/{playlistId}`: playlist with its published videos in order.
- `PATCH /playlists/{playlistId}`, `DELETE /playlists/{playlistId}`: owner only.
- `PATCH /playlists/add/{playlistId}/{videoId}`,
  `PATCH /playlists/remove/{playlistId}/{videoId}`: membership, owner only.
- `GET /playlists/user/{userId}`: a user's playlists, paginated.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.responses import api_response
from core.validation import PageRequest
from services.playlist_service import PlaylistService

from .dependencies import get_page_request, get_playlist_service, get_viewer_id

router = APIRouter(prefix="/playlists", tags=["Playlists"])


class PlaylistRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


@router.post("")
async def create_playlist(
    body: Optional[PlaylistRequest] = None,
    viewer_id: str = Depends(get_viewer_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    body = body or PlaylistRequest()
    playlist = await service.create_playlist(viewer_id, body.name, body.description)
    return api_response(201, playlist, "Playlist created successfully")


@router.get("/user/{user_id}")
async def user_playlists(
    user_id: str,
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlists = await service.user_playlists(user_id, page_request)
    return api_response(200, playlists, "User playlists fetched successfully")


@router.patch("/add/{playlist_id}/{video_id}")
async def add_video_to_playlist(
    playlist_id: str,
    video_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.add_video(playlist_id, video_id, viewer_id)
    return api_response(200, playlist, "Video added to playlist successfully")


@router.patch("/remove/{playlist_id}/{video_id}")
async def remove_video_from_playlist(
    playlist_id: str,
    video_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.remove_video(playlist_id, video_id, viewer_id)
    return api_response(200, playlist, "Video removed from playlist successfully")


@router.get("/{playlist_id}")
async def get_playlist(
    playlist_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.get_playlist(playlist_id)
    return api_response(200, playlist, "Playlist fetched successfully")


@router.patch("/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    body: Optional[PlaylistRequest] = None,
    viewer_id: str = Depends(get_viewer_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    body = body or PlaylistRequest()
    playlist = await service.update_playlist(playlist_id, viewer_id, body.name, body.description)
    return api_response(200, playlist, "Playlist updated successfully")


@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: PlaylistService = Depends(get_playlist_service),
):
    await service.delete_playlist(playlist_id, viewer_id)
    return api_response(200, {}, "Playlist deleted successfully")
