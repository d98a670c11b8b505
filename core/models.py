"""
Core data models for the VidShare API.

Every entity is an SQLModel table keyed by an opaque 32-character hex id.
Owner references are immutable after creation. Likes and subscriptions carry
no uniqueness constraint; uniqueness per (target, actor) is kept by the toggle
logic in the service layer. Playlist membership and watch history are set-like
relations keyed on both ids.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _created_at():
    return Field(default_factory=utc_now, index=True)


def _updated_at():
    return Field(
        default_factory=utc_now,
        sa_column_kwargs={"onupdate": utc_now},
    )


class User(SQLModel, table=True):
    """
    Channel owner and viewer. Credential fields are stored for the account
    flows and are never part of any projection.
    """

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    username: str = Field(index=True, unique=True, max_length=64)
    email: str = Field(unique=True, max_length=254)
    full_name: str = Field(max_length=255)
    avatar: str = Field(max_length=1024)
    cover_image: Optional[str] = Field(default=None, max_length=1024)
    password_hash: Optional[str] = Field(default=None, max_length=255)
    refresh_token: Optional[str] = Field(default=None, max_length=1024)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class Video(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    video_file: str = Field(max_length=1024)
    thumbnail: str = Field(max_length=1024)
    title: str = Field(max_length=255)
    description: str
    duration: float = Field(default=0)
    views: int = Field(default=0)
    is_published: bool = Field(default=True)
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class Comment(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    content: str
    video_id: str = Field(foreign_key="video.id", index=True, max_length=32)
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class Tweet(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    content: str
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class Like(SQLModel, table=True):
    """Exactly one of video_id, comment_id, tweet_id is set."""

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    video_id: Optional[str] = Field(default=None, foreign_key="video.id", index=True)
    comment_id: Optional[str] = Field(
        default=None, foreign_key="comment.id", index=True
    )
    tweet_id: Optional[str] = Field(default=None, foreign_key="tweet.id", index=True)
    liked_by: str = Field(foreign_key="user.id", index=True, max_length=32)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class Subscription(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    subscriber_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    channel_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class Playlist(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    name: str = Field(max_length=255)
    description: str = Field(default="")
    owner_id: str = Field(foreign_key="user.id", index=True, max_length=32)
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class PlaylistVideo(SQLModel, table=True):
    """Ordered, duplicate-free playlist membership."""

    playlist_id: str = Field(foreign_key="playlist.id", primary_key=True)
    video_id: str = Field(foreign_key="video.id", primary_key=True)
    position: int = Field(default=0)
    added_at: datetime = Field(default_factory=utc_now)


class WatchHistoryEntry(SQLModel, table=True):
    """A video in a user's watch history; present at most once per user."""

    user_id: str = Field(foreign_key="user.id", primary_key=True)
    video_id: str = Field(foreign_key="video.id", primary_key=True)
    watched_at: datetime = Field(default_factory=utc_now, index=True)
