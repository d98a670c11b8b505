"""Unit tests for the relation toggle state machine."""

import pytest
from sqlalchemy import func, select

from core.models import Like, Subscription, new_id
from services.toggle import RelationToggle, ToggleState


async def like_rows(session) -> int:
    return (await session.execute(select(func.count()).select_from(Like))).scalar_one()


@pytest.mark.unit
class TestToggleState:
    def test_flipped(self):
        assert ToggleState.ABSENT.flipped() is ToggleState.PRESENT
        assert ToggleState.PRESENT.flipped() is ToggleState.ABSENT

    def test_is_present(self):
        assert ToggleState.PRESENT.is_present
        assert not ToggleState.ABSENT.is_present


@pytest.mark.unit
class TestRelationToggle:
    async def test_toggle_creates_then_deletes(self, db_session):
        toggle = RelationToggle(db_session, Like, "video_id", "liked_by")
        video_id, user_id = new_id(), new_id()

        assert await toggle.state(video_id, user_id) is ToggleState.ABSENT
        assert await toggle.toggle(video_id, user_id) is ToggleState.PRESENT
        assert await like_rows(db_session) == 1
        assert await toggle.toggle(video_id, user_id) is ToggleState.ABSENT
        assert await like_rows(db_session) == 0

    async def test_pairs_are_independent(self, db_session):
        toggle = RelationToggle(db_session, Like, "video_id", "liked_by")
        video_id, alice, bob = new_id(), new_id(), new_id()

        await toggle.toggle(video_id, alice)
        await toggle.toggle(video_id, bob)
        await toggle.toggle(video_id, alice)

        assert await toggle.state(video_id, alice) is ToggleState.ABSENT
        assert await toggle.state(video_id, bob) is ToggleState.PRESENT

    async def test_target_columns_do_not_collide(self, db_session):
        video_toggle = RelationToggle(db_session, Like, "video_id", "liked_by")
        tweet_toggle = RelationToggle(db_session, Like, "tweet_id", "liked_by")
        target, user = new_id(), new_id()

        await video_toggle.toggle(target, user)

        assert await tweet_toggle.state(target, user) is ToggleState.ABSENT

    async def test_subscription_toggle(self, db_session):
        toggle = RelationToggle(db_session, Subscription, "channel_id", "subscriber_id")
        channel, subscriber = new_id(), new_id()

        assert (await toggle.toggle(channel, subscriber)).is_present
        row = await toggle.find(channel, subscriber)
        assert row.channel_id == channel
        assert row.subscriber_id == subscriber
