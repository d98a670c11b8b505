"""User Endpoints: own profile, channel profiles and watch history."""

from fastapi import APIRouter, Depends

from core.responses import api_response
from core.validation import PageRequest
from services.user_service import UserService

from .dependencies import get_page_request, get_user_service, get_viewer_id

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/current-user")
async def current_user(
    viewer_id: str = Depends(get_viewer_id),
    service: UserService = Depends(get_user_service),
):
    user = await service.current_user(viewer_id)
    return api_response(200, user, "Current user fetched successfully")


@router.get("/c/{user_name}")
async def channel_profile(
    user_name: str,
    viewer_id: str = Depends(get_viewer_id),
    service: UserService = Depends(get_user_service),
):
    channel = await service.channel_profile(user_name, viewer_id)
    return api_response(200, channel, "User channel fetched successfully")


@router.get("/history")
async def watch_history(
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: UserService = Depends(get_user_service),
):
    history = await service.watch_history(viewer_id, page_request)
    return api_response(200, history, "Watch history fetched successfully")
