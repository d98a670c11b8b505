"""
Upload staging.

Multipart files arrive as `UploadFile` objects. Before they can be handed to
the asset store they are written to a temporary file under
`settings.upload_tmp_dir`. `staged_uploads` owns those files: each path it
yields is removed exactly once when the block exits, whether the block
succeeded or raised.
"""

import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

from fastapi import UploadFile

from core.config import get_settings
from core.exceptions import ValidationError
from core.logging_config import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


async def stage_upload(upload: UploadFile, directory: Optional[str] = None) -> Path:
    """Write an upload to a local temporary file and return its path"""
    settings = get_settings()
    directory = directory or settings.upload_tmp_dir
    os.makedirs(directory, exist_ok=True)

    suffix = Path(upload.filename or "").suffix
    handle = tempfile.NamedTemporaryFile(dir=directory, suffix=suffix, delete=False)
    path = Path(handle.name)
    written = 0
    try:
        with handle:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.max_upload_bytes:
                    raise ValidationError(
                        f"{upload.filename or 'file'} exceeds the maximum upload size",
                        errors=[{"field": upload.filename, "reason": "too large"}],
                    )
                handle.write(chunk)
    except BaseException:
        remove_staged(path)
        raise

    if written == 0:
        remove_staged(path)
        raise ValidationError(
            f"{upload.filename or 'file'} is empty",
            errors=[{"field": upload.filename, "reason": "empty file"}],
        )

    logger.debug(f"Staged upload {upload.filename} at {path} ({written} bytes)")
    return path


def remove_staged(path: Path):
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove staged upload {path}: {e}")


@asynccontextmanager
async def staged_uploads(
    *uploads: Optional[UploadFile], directory: Optional[str] = None
) -> AsyncIterator[List[Optional[Path]]]:
    """
    Stage each upload (None stays None) and remove all staged files on exit.
    """
    staged: List[Optional[Path]] = []
    try:
        for upload in uploads:
            staged.append(await stage_upload(upload, directory) if upload else None)
        yield staged
    finally:
        while staged:
            path = staged.pop()
            if path is not None:
                remove_staged(path)
