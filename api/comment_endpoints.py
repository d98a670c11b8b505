"""Comment Endpoints: listing and managing the comments on a video."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.responses import api_response
from core.validation import PageRequest
from services.comment_service import CommentService

from .dependencies import get_comment_service, get_page_request, get_viewer_id

router = APIRouter(prefix="/comments", tags=["Comments"])


class ContentRequest(BaseModel):
    # Optional so that blank and missing content are reported the same way
    content: Optional[str] = None


def _content(body: Optional[ContentRequest]) -> Optional[str]:
    return body.content if body is not None else None


@router.get("/{video_id}")
async def list_comments(
    video_id: str,
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: CommentService = Depends(get_comment_service),
):
    comments = await service.list_comments(video_id, viewer_id, page_request)
    return api_response(200, comments, "Comments fetched successfully")


@router.post("/{video_id}")
async def add_comment(
    video_id: str,
    body: Optional[ContentRequest] = None,
    viewer_id: str = Depends(get_viewer_id),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.add_comment(video_id, viewer_id, _content(body))
    return api_response(201, comment, "Comment added successfully")


@router.patch("/c/{comment_id}")
async def update_comment(
    comment_id: str,
    body: Optional[ContentRequest] = None,
    viewer_id: str = Depends(get_viewer_id),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.update_comment(comment_id, viewer_id, _content(body))
    return api_response(200, comment, "Comment updated successfully")


@router.delete("/c/{comment_id}")
async def delete_comment(
    comment_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: CommentService = Depends(get_comment_service),
):
    await service.delete_comment(comment_id, viewer_id)
    return api_response(200, {}, "Comment deleted successfully")
