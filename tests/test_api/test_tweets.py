from core.models import Like, Tweet, new_id

TWEETS = "/api/v1/tweets"


def test_create_tweet(client, auth_headers, seed):
    author = seed.user("author")

    response = client.post(TWEETS, json={"content": "Hello, world"}, headers=auth_headers(author))

    assert response.status_code == 201
    doc = response.json()["data"]
    assert doc["content"] == "Hello, world"
    assert doc["owner"]["userName"] == "author"
    assert doc["likesCount"] == 0
    assert doc["isLiked"] is False


def test_create_tweet_requires_content(client, auth_headers, seed):
    headers = auth_headers(seed.user())

    assert client.post(TWEETS, json={"content": ""}, headers=headers).status_code == 400
    assert client.post(TWEETS, headers=headers).status_code == 400
    assert seed.count(Tweet) == 0


def test_user_tweets_newest_first(client, auth_headers, seed):
    author, viewer = seed.user(), seed.user()
    tweets = [seed.tweet(author, content=f"tweet {i}") for i in range(3)]
    seed.tweet(viewer, content="not theirs")
    seed.like(viewer, tweet_id=tweets[0].id)

    data = client.get(f"{TWEETS}/user/{author.id}", headers=auth_headers(viewer)).json()["data"]

    assert data["totalDocs"] == 3
    assert [doc["content"] for doc in data["docs"]] == ["tweet 2", "tweet 1", "tweet 0"]
    liked = data["docs"][-1]
    assert liked["likesCount"] == 1
    assert liked["isLiked"] is True


def test_user_tweets_unknown_user(client, auth_headers, seed):
    response = client.get(f"{TWEETS}/user/{new_id()}", headers=auth_headers(seed.user()))

    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_update_tweet(client, auth_headers, seed):
    author, other = seed.user(), seed.user()
    tweet = seed.tweet(author)

    forbidden = client.patch(f"{TWEETS}/{tweet.id}", json={"content": "hijack"}, headers=auth_headers(other))
    updated = client.patch(f"{TWEETS}/{tweet.id}", json={"content": "edited"}, headers=auth_headers(author))

    assert forbidden.status_code == 403
    assert updated.status_code == 200
    assert updated.json()["data"]["content"] == "edited"


def test_delete_tweet_removes_likes(client, auth_headers, seed):
    author, fan = seed.user(), seed.user()
    tweet = seed.tweet(author)
    seed.like(fan, tweet_id=tweet.id)

    forbidden = client.delete(f"{TWEETS}/{tweet.id}", headers=auth_headers(fan))
    deleted = client.delete(f"{TWEETS}/{tweet.id}", headers=auth_headers(author))

    assert forbidden.status_code == 403
    assert deleted.status_code == 200
    assert seed.count(Tweet) == 0
    assert seed.count(Like) == 0


def test_malformed_tweet_id(client, auth_headers, seed):
    response = client.delete(f"{TWEETS}/xyz", headers=auth_headers(seed.user()))

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid tweetId"
