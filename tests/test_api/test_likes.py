import pytest

from core.models import Like, new_id

LIKES = "/api/v1/likes"


class TestToggles:
    def test_video_like_toggles_on_and_off(self, client, auth_headers, seed):
        viewer = seed.user()
        video = seed.video(seed.user())
        headers = auth_headers(viewer)

        liked = client.post(f"{LIKES}/toggle/v/{video.id}", headers=headers)
        assert liked.status_code == 200
        assert liked.json()["data"] == {"isLiked": True}
        assert liked.json()["message"] == "Liked successfully"
        assert seed.count(Like, Like.video_id == video.id, Like.liked_by == viewer.id) == 1

        unliked = client.post(f"{LIKES}/toggle/v/{video.id}", headers=headers)
        assert unliked.json()["data"] == {"isLiked": False}
        assert unliked.json()["message"] == "Like removed successfully"
        assert seed.count(Like) == 0

    def test_comment_and_tweet_likes_are_separate_targets(self, client, auth_headers, seed):
        viewer, author = seed.user(), seed.user()
        comment = seed.comment(seed.video(author), author)
        tweet = seed.tweet(author)
        headers = auth_headers(viewer)

        assert client.post(f"{LIKES}/toggle/c/{comment.id}", headers=headers).json()["data"]["isLiked"]
        assert client.post(f"{LIKES}/toggle/t/{tweet.id}", headers=headers).json()["data"]["isLiked"]
        assert seed.count(Like, Like.comment_id == comment.id) == 1
        assert seed.count(Like, Like.tweet_id == tweet.id) == 1
        assert seed.count(Like, Like.video_id.is_not(None)) == 0

    @pytest.mark.parametrize(
        "kind,message",
        [("v", "Video not found"), ("c", "Comment not found"), ("t", "Tweet not found")],
    )
    def test_unknown_target(self, client, auth_headers, seed, kind, message):
        response = client.post(f"{LIKES}/toggle/{kind}/{new_id()}", headers=auth_headers(seed.user()))

        assert response.status_code == 404
        assert response.json()["message"] == message
        assert seed.count(Like) == 0

    def test_malformed_target(self, client, auth_headers, seed):
        response = client.post(f"{LIKES}/toggle/c/123", headers=auth_headers(seed.user()))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid commentId"

    def test_requires_auth(self, client, seed):
        video = seed.video(seed.user())

        assert client.post(f"{LIKES}/toggle/v/{video.id}").status_code == 401


class TestLikedVideos:
    def test_most_recently_liked_first(self, client, auth_headers, seed):
        viewer, owner = seed.user(), seed.user("owner")
        older = seed.video(owner, title="older")
        newer = seed.video(owner, title="newer")
        hidden = seed.video(owner, title="hidden", is_published=False)
        seed.like(viewer, video_id=newer.id)
        seed.like(viewer, video_id=hidden.id)
        seed.like(viewer, video_id=older.id)
        seed.like(seed.user(), video_id=newer.id)

        data = client.get(f"{LIKES}/videos", headers=auth_headers(viewer)).json()["data"]

        assert data["totalDocs"] == 2
        assert [doc["title"] for doc in data["docs"]] == ["older", "newer"]
        first = data["docs"][0]
        assert first["owner"]["userName"] == "owner"
        assert first["isLiked"] is True
        assert data["docs"][1]["likesCount"] == 2
        assert "likedAt" in first

    def test_nothing_liked(self, client, auth_headers, seed):
        viewer = seed.user()
        seed.video(seed.user())

        data = client.get(f"{LIKES}/videos", headers=auth_headers(viewer)).json()["data"]

        assert data["docs"] == []
        assert data["totalDocs"] == 0
