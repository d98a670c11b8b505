"""Tweet Service: short text posts on a user's channel."""

from typing import Any, Dict, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from core.logging_config import get_logger, log_function_call
from core.models import Like, Tweet, User
from core.projection import Projector
from core.validation import InputValidator, PageRequest
from services.guards import ensure_owner, get_or_404

logger = get_logger(__name__)

TWEET_FIELDS: Dict[str, str] = {
    "id": "id",
    "content": "content",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def tweet_projector(viewer_id: Optional[str]) -> Projector:
    return (
        Projector(Tweet, TWEET_FIELDS, {"createdAt": "created_at"})
        .lookup_owner(Tweet.owner_id)
        .count("likesCount", Like, Like.tweet_id)
        .viewer_flag("isLiked", Like, Like.tweet_id, Like.liked_by, viewer_id)
    )


class TweetService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_tweet(self, tweet_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
        InputValidator.validate_id(tweet_id, "tweetId")
        doc = await tweet_projector(viewer_id).match(Tweet.id == tweet_id).first(self.session)
        if doc is None:
            raise NotFoundError("Tweet", tweet_id)
        return doc

    @log_function_call(logger)
    async def create_tweet(self, owner_id: str, content: Optional[str]) -> Dict[str, Any]:
        content = InputValidator.validate_content(content, max_length=280)
        tweet = Tweet(content=content, owner_id=owner_id)
        self.session.add(tweet)
        await self.session.commit()
        logger.info(f"Tweet {tweet.id} created by {owner_id}")
        return await self.get_tweet(tweet.id, owner_id)

    @log_function_call(logger)
    async def user_tweets(
        self, user_id: str, viewer_id: Optional[str], page_request: PageRequest
    ) -> Dict[str, Any]:
        await get_or_404(self.session, User, user_id, "User", "userId")
        return await (
            tweet_projector(viewer_id)
            .match(Tweet.owner_id == user_id)
            .sort(page_request.sort_by, page_request.sort_type)
            .paginate(self.session, page_request)
        )

    @log_function_call(logger)
    async def update_tweet(self, tweet_id: str, caller_id: str, content: Optional[str]) -> Dict[str, Any]:
        tweet = await get_or_404(self.session, Tweet, tweet_id, "Tweet", "tweetId")
        ensure_owner(tweet, caller_id, "update")
        tweet.content = InputValidator.validate_content(content, max_length=280)
        await self.session.commit()
        return await self.get_tweet(tweet_id, caller_id)

    @log_function_call(logger)
    async def delete_tweet(self, tweet_id: str, caller_id: str):
        tweet = await get_or_404(self.session, Tweet, tweet_id, "Tweet", "tweetId")
        ensure_owner(tweet, caller_id, "delete")
        await self.session.execute(delete(Like).where(Like.tweet_id == tweet_id))
        await self.session.delete(tweet)
        await self.session.commit()
        logger.info(f"Tweet {tweet_id} deleted by {caller_id}")
