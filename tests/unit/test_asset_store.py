"""Unit tests for the asset store providers."""

import hashlib
from unittest.mock import patch

import aiohttp
import pytest

from core.exceptions import AssetStoreError
from providers.asset_store import CloudinaryAssetStore, LocalAssetStore, extract_public_id


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self.payload = payload

    async def json(self, content_type=None):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeClientSession:
    """Stands in for aiohttp.ClientSession; records posts"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def __call__(self, *args, **kwargs):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def post(self, url, data=None):
        self.posts.append((url, data))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def cloudinary():
    return CloudinaryAssetStore("demo", "key123", "secret456")


@pytest.mark.unit
class TestExtractPublicId:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://res.cloudinary.com/demo/image/upload/v1700000000/sample.jpg", "sample"),
            ("https://res.cloudinary.com/demo/video/upload/v1/vidshare/clip.mp4", "vidshare/clip"),
            ("http://res.cloudinary.com/demo/image/upload/folder/sub/name.png", "folder/sub/name"),
            ("https://res.cloudinary.com/demo/image/upload/v12/no_extension", "no_extension"),
        ],
    )
    def test_public_ids(self, url, expected):
        assert extract_public_id(url) == expected

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/images/a.png", "https://res.cloudinary.com/demo/image/upload/v12/"],
    )
    def test_rejects_non_upload_urls(self, url):
        with pytest.raises(ValueError):
            extract_public_id(url)


@pytest.mark.unit
class TestCloudinaryAssetStore:
    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            CloudinaryAssetStore("demo", "", "secret")

    def test_signature(self, cloudinary):
        expected = hashlib.sha1(b"public_id=vidshare/clip&timestamp=1700000000secret456").hexdigest()

        assert cloudinary.sign({"timestamp": 1700000000, "public_id": "vidshare/clip"}) == expected

    def test_signature_skips_empty_values(self, cloudinary):
        assert cloudinary.sign({"timestamp": 1, "folder": ""}) == cloudinary.sign({"timestamp": 1})

    async def test_delete_ok(self, cloudinary):
        session = FakeClientSession(FakeResponse(200, {"result": "ok"}))
        with patch("providers.asset_store.aiohttp.ClientSession", session):
            assert await cloudinary.delete("vidshare/clip", "video") is True

        url, data = session.posts[0]
        assert url == "https://api.cloudinary.com/v1_1/demo/video/destroy"
        assert data["public_id"] == "vidshare/clip"
        assert data["api_key"] == "key123"
        assert data["signature"] == cloudinary.sign(
            {"public_id": "vidshare/clip", "timestamp": int(data["timestamp"])}
        )

    async def test_delete_not_found(self, cloudinary):
        session = FakeClientSession(FakeResponse(200, {"result": "not found"}))
        with patch("providers.asset_store.aiohttp.ClientSession", session):
            assert await cloudinary.delete("missing") is False

    async def test_delete_network_failure(self, cloudinary):
        session = FakeClientSession(error=aiohttp.ClientConnectionError("refused"))
        with patch("providers.asset_store.aiohttp.ClientSession", session):
            with pytest.raises(AssetStoreError) as exc_info:
                await cloudinary.delete("vidshare/clip")

        assert exc_info.value.operation == "delete"

    async def test_delete_url(self, cloudinary):
        session = FakeClientSession(FakeResponse(200, {"result": "ok"}))
        with patch("providers.asset_store.aiohttp.ClientSession", session):
            await cloudinary.delete_url(
                "https://res.cloudinary.com/demo/image/upload/v1/vidshare/thumb.png"
            )

        assert session.posts[0][1]["public_id"] == "vidshare/thumb"

    async def test_store(self, cloudinary, tmp_path):
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"video")
        payload = {
            "secure_url": "https://res.cloudinary.com/demo/video/upload/v1/abc.mp4",
            "public_id": "abc",
            "resource_type": "video",
            "duration": 31.5,
        }
        session = FakeClientSession(FakeResponse(200, payload))
        with patch("providers.asset_store.aiohttp.ClientSession", session):
            asset = await cloudinary.store(source)

        assert session.posts[0][0] == "https://api.cloudinary.com/v1_1/demo/auto/upload"
        assert asset.url == payload["secure_url"]
        assert asset.public_id == "abc"
        assert asset.resource_type == "video"
        assert asset.duration == 31.5

    async def test_store_rejected(self, cloudinary, tmp_path):
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"video")
        session = FakeClientSession(FakeResponse(400, {"error": {"message": "Invalid file"}}))
        with patch("providers.asset_store.aiohttp.ClientSession", session):
            with pytest.raises(AssetStoreError) as exc_info:
                await cloudinary.store(source)

        assert exc_info.value.reason == "Invalid file"


@pytest.mark.unit
class TestLocalAssetStore:
    async def test_store_and_delete(self, tmp_path):
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"video")
        store = LocalAssetStore(str(tmp_path / "media"), "/media")

        asset = await store.store(source)

        assert asset.resource_type == "video"
        assert asset.url == f"/media/{asset.public_id}.mp4"
        assert (tmp_path / "media" / f"{asset.public_id}.mp4").read_bytes() == b"video"
        assert store.public_id_from_url(asset.url) == asset.public_id

        assert await store.delete_url(asset.url, "video") is True
        assert not (tmp_path / "media" / f"{asset.public_id}.mp4").exists()
        assert await store.delete(asset.public_id) is False

    async def test_images_have_no_duration(self, tmp_path):
        source = tmp_path / "thumb.png"
        source.write_bytes(b"image")
        store = LocalAssetStore(str(tmp_path / "media"))

        asset = await store.store(source)

        assert asset.resource_type == "image"
        assert asset.duration is None

    async def test_missing_source_raises(self, tmp_path):
        store = LocalAssetStore(str(tmp_path / "media"))

        with pytest.raises(AssetStoreError):
            await store.store(tmp_path / "nope.png")
