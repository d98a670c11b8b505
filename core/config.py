"""
Application settings.

Every tunable of the VidShare API is read from the environment once and cached
for the lifetime of the process. Call `get_settings.cache_clear()` after
changing the environment (tests do this through the `settings` fixture).
"""

import os
from functools import lru_cache
from typing import List

from pydantic import BaseModel


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    environment: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./vidshare.db"

    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    cors_origins: List[str] = ["http://localhost:3000"]

    # "local" keeps assets on disk under media_root, "cloudinary" uploads them
    asset_store: str = "local"
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    media_root: str = "./media"
    media_url: str = "/media"

    upload_tmp_dir: str = "./public/temp"
    max_upload_bytes: int = 200 * 1024 * 1024

    default_page_size: int = 10
    max_page_size: int = 100

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            environment=os.getenv("ENVIRONMENT", defaults.environment).lower(),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", defaults.jwt_secret_key),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", defaults.jwt_algorithm),
            access_token_expire_minutes=int(
                os.getenv(
                    "ACCESS_TOKEN_EXPIRE_MINUTES", defaults.access_token_expire_minutes
                )
            ),
            cors_origins=_csv(os.getenv("CORS_ORIGINS", ",".join(defaults.cors_origins))),
            asset_store=os.getenv("ASSET_STORE", defaults.asset_store).lower(),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY", ""),
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET", ""),
            media_root=os.getenv("MEDIA_ROOT", defaults.media_root),
            media_url=os.getenv("MEDIA_URL", defaults.media_url).rstrip("/"),
            upload_tmp_dir=os.getenv("UPLOAD_TMP_DIR", defaults.upload_tmp_dir),
            max_upload_bytes=int(
                os.getenv("MAX_UPLOAD_BYTES", defaults.max_upload_bytes)
            ),
            default_page_size=int(
                os.getenv("DEFAULT_PAGE_SIZE", defaults.default_page_size)
            ),
            max_page_size=int(os.getenv("MAX_PAGE_SIZE", defaults.max_page_size)),
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
