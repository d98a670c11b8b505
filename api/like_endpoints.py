"""Like Endpoints: toggles per target kind and the viewer's liked videos."""

from fastapi import APIRouter, Depends

from core.responses import api_response
from core.validation import PageRequest
from services.like_service import LikeService

from .dependencies import get_like_service, get_page_request, get_viewer_id

router = APIRouter(prefix="/likes", tags=["Likes"])


def _message(state: dict) -> str:
    return "Liked successfully" if state["isLiked"] else "Like removed successfully"


@router.post("/toggle/v/{video_id}")
async def toggle_video_like(
    video_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: LikeService = Depends(get_like_service),
):
    state = await service.toggle_video_like(video_id, viewer_id)
    return api_response(200, state, _message(state))


@router.post("/toggle/c/{comment_id}")
async def toggle_comment_like(
    comment_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: LikeService = Depends(get_like_service),
):
    state = await service.toggle_comment_like(comment_id, viewer_id)
    return api_response(200, state, _message(state))


@router.post("/toggle/t/{tweet_id}")
async def toggle_tweet_like(
    tweet_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: LikeService = Depends(get_like_service),
):
    state = await service.toggle_tweet_like(tweet_id, viewer_id)
    return api_response(200, state, _message(state))


@router.get("/videos")
async def liked_videos(
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: LikeService = Depends(get_like_service),
):
    videos = await service.liked_videos(viewer_id, page_request)
    return api_response(200, videos, "Liked videos fetched successfully")
