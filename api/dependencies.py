"""
Request-scoped dependencies shared by the routers.

The viewer identity is resolved here once per request and passed explicitly
into every service call; nothing below the routers reads it from ambient
request state.
"""

from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import extract_token, get_jwt_manager
from core.config import get_settings
from core.database import get_session
from core.exceptions import AuthenticationError
from core.logging_config import get_logger
from core.models import User
from core.validation import PageRequest, parse_page_request
from providers.asset_store import AssetStore, CloudinaryAssetStore, LocalAssetStore
from services.comment_service import CommentService
from services.like_service import LikeService
from services.playlist_service import PlaylistService
from services.subscription_service import SubscriptionService
from services.tweet_service import TweetService
from services.user_service import UserService
from services.video_service import VideoService

logger = get_logger(__name__)

_asset_store: Optional[AssetStore] = None


async def get_viewer_id(request: Request, session: AsyncSession = Depends(get_session)) -> str:
    """Authenticated viewer id; 401 without a valid token for an existing user"""
    token = extract_token(request)
    if not token:
        raise AuthenticationError("Unauthorized request")

    viewer_id = get_jwt_manager().viewer_id_from_token(token)
    if await session.get(User, viewer_id) is None:
        logger.info("Rejected token for unknown user", extra={"viewer_id": viewer_id})
        raise AuthenticationError("Invalid access token")

    return viewer_id


def get_asset_store() -> AssetStore:
    global _asset_store
    if _asset_store is None:
        settings = get_settings()
        if settings.asset_store == "cloudinary":
            _asset_store = CloudinaryAssetStore(
                settings.cloudinary_cloud_name,
                settings.cloudinary_api_key,
                settings.cloudinary_api_secret,
            )
        else:
            _asset_store = LocalAssetStore(settings.media_root, settings.media_url)
        logger.info(f"Using {_asset_store.source_name} asset store")
    return _asset_store


def get_page_request(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_type: Optional[str] = Query(None, alias="sortType"),
) -> PageRequest:
    return parse_page_request(page, limit, sort_by, sort_type)


def get_video_service(
    session: AsyncSession = Depends(get_session),
    asset_store: AssetStore = Depends(get_asset_store),
) -> VideoService:
    return VideoService(session, asset_store)


def get_comment_service(session: AsyncSession = Depends(get_session)) -> CommentService:
    return CommentService(session)


def get_tweet_service(session: AsyncSession = Depends(get_session)) -> TweetService:
    return TweetService(session)


def get_like_service(session: AsyncSession = Depends(get_session)) -> LikeService:
    return LikeService(session)


def get_subscription_service(session: AsyncSession = Depends(get_session)) -> SubscriptionService:
    return SubscriptionService(session)


def get_playlist_service(session: AsyncSession = Depends(get_session)) -> PlaylistService:
    return PlaylistService(session)


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)
