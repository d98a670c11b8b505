"""
Binary Asset Store Providers.

Videos, thumbnails and images never live in the database; only the URL the
asset store hands back does. Two providers implement the same interface:

- `CloudinaryAssetStore`: the media host used in production. Talks to the
  signed upload/destroy REST endpoints with aiohttp.
- `LocalAssetStore`: copies files under `settings.media_root`, served by the
  application under `settings.media_url`. Used for development.

Each provider can turn a URL it produced back into the public id needed to
delete the asset.
"""

import asyncio
import hashlib
import os
import re
import shutil
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import aiohttp

from core.exceptions import AssetStoreError
from core.logging_config import get_logger

logger = get_logger(__name__)

_VERSION_SEGMENT = re.compile(r"^v\d+$")


@dataclass
class StoredAsset:
    url: str
    public_id: str
    resource_type: str = "image"
    duration: Optional[float] = None


class AssetStore(ABC):
    """Abstract base class for binary asset stores"""

    @abstractmethod
    async def store(self, local_path: Path) -> StoredAsset:
        """Upload a local file. Raises AssetStoreError on failure."""

    @abstractmethod
    async def delete(self, public_id: str, resource_type: str = "image") -> bool:
        """Remove an asset. Returns False when the store had no such asset."""

    @abstractmethod
    def public_id_from_url(self, url: str) -> str:
        """Recover the public id of an asset from its URL"""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Identifier for this store"""

    async def delete_url(self, url: Optional[str], resource_type: str = "image") -> bool:
        if not url:
            return False
        return await self.delete(self.public_id_from_url(url), resource_type)


def extract_public_id(url: str) -> str:
    """
    Public id of a Cloudinary delivery URL:
    `.../<type>/upload/[v<version>/]<folder>/<name>.<ext>` -> `<folder>/<name>`
    """
    parts = urlparse(url).path.split("/")
    if "upload" not in parts:
        raise ValueError(f"Not an upload URL: {url}")
    remainder = [p for p in parts[parts.index("upload") + 1 :] if p]
    if remainder and _VERSION_SEGMENT.match(remainder[0]):
        remainder = remainder[1:]
    if not remainder:
        raise ValueError(f"No public id in URL: {url}")
    remainder[-1] = remainder[-1].rsplit(".", 1)[0]
    return "/".join(remainder)


class CloudinaryAssetStore(AssetStore):
    """Cloudinary media host via the signed REST API"""

    API_BASE = "https://api.cloudinary.com/v1_1"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout_seconds: float = 300,
    ):
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary credentials are not configured")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    def source_name(self) -> str:
        return "cloudinary"

    def sign(self, params: Dict[str, Any]) -> str:
        """SHA-1 signature over the sorted, non-empty parameters"""
        to_sign = "&".join(
            f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, "")
        )
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def _endpoint(self, resource_type: str, action: str) -> str:
        return f"{self.API_BASE}/{self.cloud_name}/{resource_type}/{action}"

    async def store(self, local_path: Path) -> StoredAsset:
        timestamp = int(time.time())
        signature = self.sign({"timestamp": timestamp})

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                with open(local_path, "rb") as fh:
                    form = aiohttp.FormData()
                    form.add_field("file", fh, filename=Path(local_path).name)
                    form.add_field("api_key", self.api_key)
                    form.add_field("timestamp", str(timestamp))
                    form.add_field("signature", signature)
                    async with session.post(self._endpoint("auto", "upload"), data=form) as response:
                        payload = await response.json(content_type=None)
                        if response.status != 200:
                            reason = (payload or {}).get("error", {}).get("message", f"HTTP {response.status}")
                            raise AssetStoreError("upload", reason)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Cloudinary upload failed for {local_path}: {e}")
            raise AssetStoreError("upload", str(e))

        url = payload.get("secure_url") or payload.get("url")
        if not url:
            raise AssetStoreError("upload", "response carried no url")

        logger.info(f"Uploaded {Path(local_path).name} to Cloudinary as {payload.get('public_id')}")
        return StoredAsset(
            url=url,
            public_id=payload.get("public_id") or extract_public_id(url),
            resource_type=payload.get("resource_type", "image"),
            duration=payload.get("duration"),
        )

    async def delete(self, public_id: str, resource_type: str = "image") -> bool:
        timestamp = int(time.time())
        params = {"public_id": public_id, "timestamp": timestamp}
        data = {
            **{k: str(v) for k, v in params.items()},
            "api_key": self.api_key,
            "signature": self.sign(params),
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self._endpoint(resource_type, "destroy"), data=data) as response:
                    payload = await response.json(content_type=None)
                    if response.status != 200:
                        raise AssetStoreError("delete", f"HTTP {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Cloudinary destroy failed for {public_id}: {e}")
            raise AssetStoreError("delete", str(e))

        result = (payload or {}).get("result")
        if result == "ok":
            logger.info(f"Removed {resource_type} {public_id} from Cloudinary")
            return True
        if result == "not found":
            return False
        raise AssetStoreError("delete", f"unexpected result {result!r}")

    def public_id_from_url(self, url: str) -> str:
        return extract_public_id(url)


class LocalAssetStore(AssetStore):
    """Keeps assets on the local disk under `media_root`"""

    VIDEO_SUFFIXES = {".mp4", ".mov", ".webm", ".mkv", ".avi", ".m4v"}

    def __init__(self, media_root: str, media_url: str = "/media"):
        self.media_root = Path(media_root)
        self.media_url = media_url.rstrip("/")

    @property
    def source_name(self) -> str:
        return "local"

    async def store(self, local_path: Path) -> StoredAsset:
        local_path = Path(local_path)
        suffix = local_path.suffix.lower()
        public_id = uuid.uuid4().hex
        try:
            os.makedirs(self.media_root, exist_ok=True)
            shutil.copyfile(local_path, self.media_root / f"{public_id}{suffix}")
        except OSError as e:
            logger.error(f"Local asset store failed for {local_path}: {e}")
            raise AssetStoreError("upload", str(e))

        resource_type = "video" if suffix in self.VIDEO_SUFFIXES else "image"
        return StoredAsset(
            url=f"{self.media_url}/{public_id}{suffix}",
            public_id=public_id,
            resource_type=resource_type,
            duration=0.0 if resource_type == "video" else None,
        )

    async def delete(self, public_id: str, resource_type: str = "image") -> bool:
        matches = list(self.media_root.glob(f"{public_id}.*")) + list(
            self.media_root.glob(public_id)
        )
        if not matches:
            return False
        for path in matches:
            try:
                path.unlink()
            except OSError as e:
                raise AssetStoreError("delete", str(e))
        return True

    def public_id_from_url(self, url: str) -> str:
        name = urlparse(url).path.rsplit("/", 1)[-1]
        return name.rsplit(".", 1)[0]
