"""
Video Endpoints.

Endpoints Provided:
- `GET /videos`: paginated, searchable, sortable listing of published videos.
- `POST /videos`: publish a video (multipart: `title`, `description`,
  `videoFile`, `thumbnail`).
- `GET /videos/{videoId}`: one video; counts a view and records it in the
  viewer's watch history after the response is built.
- `PATCH /videos/{videoId}`: update title, description and/or thumbnail.
- `DELETE /videos/{videoId}`: delete the video with its dependents.
- `PATCH /videos/toggle/publish/{videoId}`: flip the published flag.

Uploaded files are staged on local disk for the duration of the request and
removed afterwards whatever the outcome.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.database import get_session_factory
from core.logging_config import get_logger
from core.responses import api_response
from core.uploads import staged_uploads
from core.validation import PageRequest
from services.video_service import VideoService, record_view_in_background

from .dependencies import get_page_request, get_video_service, get_viewer_id

logger = get_logger(__name__)
router = APIRouter(prefix="/videos", tags=["Videos"])


@router.get("")
async def list_videos(
    query: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: VideoService = Depends(get_video_service),
):
    videos = await service.list_videos(viewer_id, page_request, query=query, user_id=user_id)
    return api_response(200, videos, "Videos fetched successfully")


@router.post("")
async def publish_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    viewer_id: str = Depends(get_viewer_id),
    service: VideoService = Depends(get_video_service),
):
    async with staged_uploads(video_file, thumbnail) as (video_path, thumbnail_path):
        video = await service.publish_video(
            viewer_id, title, description, video_path, thumbnail_path
        )
    return api_response(201, video, "Video uploaded successfully")


@router.get("/{video_id}")
async def get_video(
    video_id: str,
    background_tasks: BackgroundTasks,
    viewer_id: str = Depends(get_viewer_id),
    service: VideoService = Depends(get_video_service),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    video = await service.get_video(video_id, viewer_id)
    background_tasks.add_task(record_view_in_background, session_factory, video_id, viewer_id)
    return api_response(200, video, "Video fetched successfully")


@router.patch("/toggle/publish/{video_id}")
async def toggle_publish_status(
    video_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: VideoService = Depends(get_video_service),
):
    status = await service.toggle_publish_status(video_id, viewer_id)
    return api_response(200, status, "Video publish status toggled successfully")


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    viewer_id: str = Depends(get_viewer_id),
    service: VideoService = Depends(get_video_service),
):
    async with staged_uploads(thumbnail) as (thumbnail_path,):
        video = await service.update_video(
            video_id, viewer_id, title=title, description=description, thumbnail_path=thumbnail_path
        )
    return api_response(200, video, "Video updated successfully")


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: VideoService = Depends(get_video_service),
):
    await service.delete_video(video_id, viewer_id)
    return api_response(200, {}, "Video deleted successfully")
