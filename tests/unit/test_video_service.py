"""Unit tests for VideoService asset bookkeeping and view recording."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from core.database import create_session_factory
from core.exceptions import AssetStoreError
from core.models import User, Video, WatchHistoryEntry
from services.video_service import VideoService, record_view_in_background


@pytest.fixture
def media_files(tmp_path):
    video = tmp_path / "clip.mp4"
    thumbnail = tmp_path / "cover.png"
    video.write_bytes(b"\x00" * 32)
    thumbnail.write_bytes(b"\x89PNG")
    return video, thumbnail


@pytest.fixture
async def owner(db_session):
    user = User(username="owner", email="owner@example.com", full_name="Owner", avatar="a.png")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.mark.unit
class TestPublishCompensation:
    async def test_database_failure_discards_both_assets(self, db_session, asset_store, owner, media_files):
        db_session.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
        service = VideoService(db_session, asset_store)

        with pytest.raises(OperationalError):
            await service.publish_video(owner.id, "Title", "Description", *media_files)

        assert asset_store.deleted == [("vidshare/asset1", "video"), ("vidshare/asset2", "image")]

    async def test_video_upload_failure_stores_nothing(self, db_session, asset_store, owner, media_files):
        asset_store.fail_on_store = 1
        service = VideoService(db_session, asset_store)

        with pytest.raises(AssetStoreError):
            await service.publish_video(owner.id, "Title", "Description", *media_files)

        assert asset_store.deleted == []
        assert asset_store.store_calls == 1

    async def test_discard_failure_keeps_original_error(self, db_session, asset_store, owner, media_files):
        asset_store.fail_on_store = 2
        asset_store.fail_on_delete = True
        service = VideoService(db_session, asset_store)

        with pytest.raises(AssetStoreError) as exc_info:
            await service.publish_video(owner.id, "Title", "Description", *media_files)

        assert exc_info.value.operation == "upload"

    async def test_publish_uses_asset_duration(self, db_session, asset_store, owner, media_files):
        doc = await VideoService(db_session, asset_store).publish_video(
            owner.id, "Title", "Description", *media_files
        )

        assert doc["duration"] == 12.5
        assert doc["views"] == 0
        assert doc["isPublished"] is True
        assert doc["owner"]["id"] == owner.id


@pytest.mark.unit
class TestRecordView:
    async def test_counts_views_and_keeps_single_history_entry(self, db_session, owner):
        video = Video(
            video_file="v.mp4", thumbnail="t.png", title="t", description="d", owner_id=owner.id
        )
        db_session.add(video)
        await db_session.commit()
        service = VideoService(db_session)

        await service.record_view(video.id, owner.id)
        await service.record_view(video.id, owner.id)
        await service.record_view(video.id, None)

        await db_session.refresh(video)
        assert video.views == 3
        assert await db_session.get(WatchHistoryEntry, (owner.id, video.id)) is not None

    async def test_history_conflict_keeps_view(self, db_session, owner):
        video = Video(
            video_file="v.mp4", thumbnail="t.png", title="t", description="d", owner_id=owner.id
        )
        db_session.add_all([video, WatchHistoryEntry(user_id=owner.id, video_id=video.id)])
        await db_session.commit()
        db_session.expunge_all()

        # Another fetch added the entry after this one looked for it
        with pytest.MonkeyPatch.context() as mp:
            mp.setattr(db_session, "get", AsyncMock(return_value=None))
            await VideoService(db_session).record_view(video.id, owner.id)

        assert (await db_session.get(Video, video.id)).views == 1
        entries = await db_session.execute(
            select(func.count()).select_from(WatchHistoryEntry).where(WatchHistoryEntry.user_id == owner.id)
        )
        assert entries.scalar_one() == 1

    async def test_background_failure_is_logged(self, db_session):
        factory = create_session_factory(db_session.bind)
        failing = AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("locked")))
        logger = MagicMock()

        with pytest.MonkeyPatch.context() as mp:
            mp.setattr(VideoService, "record_view", failing)
            mp.setattr("services.video_service.logger", logger)
            await record_view_in_background(factory, "a" * 32, None)

        logger.warning.assert_called_once()
        assert "Recording view of video" in logger.warning.call_args.args[0]
