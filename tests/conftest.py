import asyncio
import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are cached on first use, so the test environment is fixed before import
_TEST_DIR = tempfile.mkdtemp(prefix="vidshare-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ASSET_STORE"] = "local"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/unused.db"
os.environ["UPLOAD_TMP_DIR"] = os.path.join(_TEST_DIR, "temp")
os.environ["MEDIA_ROOT"] = os.path.join(_TEST_DIR, "media")

from sqlalchemy import func, select  # noqa: E402

from api.dependencies import get_asset_store  # noqa: E402
from core.auth import get_jwt_manager  # noqa: E402
from core.database import (  # noqa: E402
    create_db_and_tables,
    create_engine_for_url,
    create_session_factory,
    get_session_factory,
)
from core.exceptions import AssetStoreError  # noqa: E402
from core.models import (  # noqa: E402
    Comment,
    Like,
    Playlist,
    PlaylistVideo,
    Subscription,
    Tweet,
    User,
    Video,
    WatchHistoryEntry,
)
from main import app  # noqa: E402
from providers.asset_store import AssetStore, StoredAsset, extract_public_id  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class RecordingAssetStore(AssetStore):
    """In-memory asset store double that records every call"""

    def __init__(self, fail_on_store: Optional[int] = None, fail_on_delete: bool = False):
        # 1-based index of the store() call that raises
        self.fail_on_store = fail_on_store
        self.fail_on_delete = fail_on_delete
        self.store_calls = 0
        self.stored: List[StoredAsset] = []
        self.deleted: List[Tuple[str, str]] = []

    @property
    def source_name(self) -> str:
        return "recording"

    async def store(self, local_path: Path) -> StoredAsset:
        self.store_calls += 1
        if self.fail_on_store == self.store_calls:
            raise AssetStoreError("upload", "simulated failure")

        local_path = Path(local_path)
        assert local_path.exists()
        is_video = local_path.suffix.lower() in (".mp4", ".mov", ".webm")
        resource_type = "video" if is_video else "image"
        public_id = f"vidshare/asset{self.store_calls}"
        asset = StoredAsset(
            url=f"https://res.cloudinary.com/demo/{resource_type}/upload/v1700000000/{public_id}{local_path.suffix}",
            public_id=public_id,
            resource_type=resource_type,
            duration=12.5 if is_video else None,
        )
        self.stored.append(asset)
        return asset

    async def delete(self, public_id: str, resource_type: str = "image") -> bool:
        if self.fail_on_delete:
            raise AssetStoreError("delete", "simulated failure")
        self.deleted.append((public_id, resource_type))
        return True

    def public_id_from_url(self, url: str) -> str:
        return extract_public_id(url)

    @property
    def deleted_ids(self) -> List[str]:
        return [public_id for public_id, _ in self.deleted]


class Seeder:
    """Writes fixture rows through the test session factory from sync tests"""

    def __init__(self, factory):
        self.factory = factory
        self._users = 0
        self._clock = 0

    def _run(self, coro):
        return asyncio.run(coro)

    def tick(self) -> datetime:
        """Strictly increasing timestamps for deterministic ordering"""
        self._clock += 1
        return BASE_TIME + timedelta(minutes=self._clock)

    def add(self, *objects):
        async def _add():
            async with self.factory() as session:
                session.add_all(objects)
                await session.commit()

        self._run(_add())
        return objects[0] if len(objects) == 1 else objects

    def user(self, username: Optional[str] = None, **kwargs) -> User:
        self._users += 1
        username = username or f"user{self._users}"
        kwargs.setdefault("full_name", username.title())
        kwargs.setdefault("avatar", f"https://cdn.example.com/{username}.png")
        kwargs.setdefault("email", f"{username}@example.com")
        kwargs.setdefault("created_at", self.tick())
        return self.add(User(username=username, **kwargs))

    def video(self, owner: User, **kwargs) -> Video:
        kwargs.setdefault("title", "A video")
        kwargs.setdefault("description", "A description")
        kwargs.setdefault("video_file", "https://res.cloudinary.com/demo/video/upload/v1/vidshare/v.mp4")
        kwargs.setdefault("thumbnail", "https://res.cloudinary.com/demo/image/upload/v1/vidshare/t.png")
        kwargs.setdefault("duration", 10.0)
        kwargs.setdefault("created_at", self.tick())
        return self.add(Video(owner_id=owner.id, **kwargs))

    def comment(self, video: Video, owner: User, content: str = "Nice video", **kwargs) -> Comment:
        kwargs.setdefault("created_at", self.tick())
        return self.add(Comment(video_id=video.id, owner_id=owner.id, content=content, **kwargs))

    def tweet(self, owner: User, content: str = "Hello", **kwargs) -> Tweet:
        kwargs.setdefault("created_at", self.tick())
        return self.add(Tweet(owner_id=owner.id, content=content, **kwargs))

    def like(self, user: User, **target) -> Like:
        return self.add(Like(liked_by=user.id, created_at=self.tick(), **target))

    def subscribe(self, subscriber: User, channel: User) -> Subscription:
        return self.add(
            Subscription(subscriber_id=subscriber.id, channel_id=channel.id, created_at=self.tick())
        )

    def playlist(self, owner: User, name: str = "Favourites", videos=(), **kwargs) -> Playlist:
        kwargs.setdefault("created_at", self.tick())
        playlist = self.add(Playlist(owner_id=owner.id, name=name, **kwargs))
        for position, video in enumerate(videos):
            self.add(PlaylistVideo(playlist_id=playlist.id, video_id=video.id, position=position))
        return playlist

    def history(self, user: User, video: Video) -> WatchHistoryEntry:
        return self.add(WatchHistoryEntry(user_id=user.id, video_id=video.id, watched_at=self.tick()))

    def get(self, model, ident):
        async def _get():
            async with self.factory() as session:
                return await session.get(model, ident)

        return self._run(_get())

    def count(self, model, *criteria) -> int:
        async def _count():
            async with self.factory() as session:
                stmt = select(func.count()).select_from(model)
                if criteria:
                    stmt = stmt.where(*criteria)
                return (await session.execute(stmt)).scalar_one()

        return self._run(_count())


def _database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'vidshare-test.db'}"


@pytest.fixture
def session_factory(tmp_path):
    """Fresh file database per test for sync (TestClient) tests"""
    engine = create_engine_for_url(_database_url(tmp_path), pooled=False)
    asyncio.run(create_db_and_tables(engine))
    yield create_session_factory(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
async def db_session(tmp_path):
    """Fresh file database per test for async service tests"""
    engine = create_engine_for_url(_database_url(tmp_path), pooled=False)
    await create_db_and_tables(engine)
    factory = create_session_factory(engine)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def asset_store() -> RecordingAssetStore:
    return RecordingAssetStore()


@pytest.fixture
def client(session_factory, asset_store) -> Generator[TestClient, None, None]:
    """Test client bound to the per-test database and asset store double"""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_asset_store] = lambda: asset_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a seeded user"""

    def _headers(user: User) -> dict:
        token = get_jwt_manager().create_access_token(user.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
