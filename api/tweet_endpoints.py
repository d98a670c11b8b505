"""Tweet Endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends

from core.responses import api_response
from core.validation import PageRequest
from services.tweet_service import TweetService

from .comment_endpoints import ContentRequest
from .dependencies import get_page_request, get_tweet_service, get_viewer_id

router = APIRouter(prefix="/tweets", tags=["Tweets"])


@router.post("")
async def create_tweet(
    body: Optional[ContentRequest] = None,
    viewer_id: str = Depends(get_viewer_id),
    service: TweetService = Depends(get_tweet_service),
):
    tweet = await service.create_tweet(viewer_id, body.content if body else None)
    return api_response(201, tweet, "Tweet created successfully")


@router.get("/user/{user_id}")
async def user_tweets(
    user_id: str,
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: TweetService = Depends(get_tweet_service),
):
    tweets = await service.user_tweets(user_id, viewer_id, page_request)
    return api_response(200, tweets, "Tweets fetched successfully")


@router.patch("/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    body: Optional[ContentRequest] = None,
    viewer_id: str = Depends(get_viewer_id),
    service: TweetService = Depends(get_tweet_service),
):
    tweet = await service.update_tweet(tweet_id, viewer_id, body.content if body else None)
    return api_response(200, tweet, "Tweet updated successfully")


@router.delete("/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: TweetService = Depends(get_tweet_service),
):
    await service.delete_tweet(tweet_id, viewer_id)
    return api_response(200, {}, "Tweet deleted successfully")
