import uuid
from pathlib import Path
from typing import AsyncIterator

import aiofiles
import aiofiles.os

from cdn_server.app.errors import (
    CdnError,
    BadRequestError,
    InternalError,
    NotFoundError,
    PayloadTooLargeError,
    CREATE_DIR_FAILED,
    WRITE_FAILED,
    FILE_NOT_FOUND,
    DELETE_FAILED,
    NOT_A_FILE,
)
from cdn_server.app.services.path_resolver import (
    ResolvedPath,
    resolve_stored_path,
    resolve_upload_path,
)
from cdn_server.logger_config import setup_logger

logger = setup_logger(__name__)


class StorageManager:
    def __init__(self, upload_dir: Path, temp_dir: Path, max_upload_size: int):
        self.upload_dir = upload_dir
        self.temp_dir = temp_dir
        self.max_upload_size = max_upload_size

    async def initialize(self):
        """Create the upload root and temp directory, drop leftover temp files."""
        logger.info("Initializing storage manager...")

        self.upload_dir.mkdir(exist_ok=True, parents=True)
        self.temp_dir.mkdir(exist_ok=True, parents=True)
        logger.debug(f"Storage directories created/verified: {self.upload_dir}, {self.temp_dir}")

        # Uploads interrupted by a crash leave their temp files behind
        files_removed = 0
        for file in self.temp_dir.glob("*.part"):
            if file.is_file():
                await aiofiles.os.unlink(file)
                files_removed += 1
        logger.info(f"Cleaned temporary directory, removed {files_removed} files")

    def upload_path(self, directory, filename: str) -> ResolvedPath:
        return resolve_upload_path(self.upload_dir, directory, filename)

    def stored_path(self, logical_path: str) -> ResolvedPath:
        return resolve_stored_path(self.upload_dir, logical_path)

    async def ensure_directory(self, directory: Path):
        """Create ``directory`` and its parents; an existing directory is fine."""
        try:
            await aiofiles.os.makedirs(directory, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating directory {directory}: {str(e)}", exc_info=True)
            raise InternalError(CREATE_DIR_FAILED)

    async def save_stream(self, target: Path, chunks: AsyncIterator[bytes]) -> int:
        """Write ``chunks`` to ``target`` and return the number of bytes stored.

        Data goes to a temp file first and replaces the target only once the
        whole payload has been received within the size limit, so a failed
        upload never creates or truncates the target.
        """
        temp_path = self.temp_dir / f"{uuid.uuid4().hex}.part"
        content_size = 0

        try:
            async with aiofiles.open(temp_path, 'wb') as f:
                async for chunk in chunks:
                    content_size += len(chunk)
                    if content_size > self.max_upload_size:
                        logger.warning(
                            f"Upload to {target} exceeded {self.max_upload_size} bytes, aborting"
                        )
                        raise PayloadTooLargeError(
                            f"File exceeds the maximum upload size of {self.max_upload_size} bytes"
                        )
                    await f.write(chunk)

            await aiofiles.os.replace(temp_path, target)

        except CdnError:
            await self._discard(temp_path)
            raise
        except OSError as e:
            logger.error(f"Error writing {target}: {str(e)}", exc_info=True)
            await self._discard(temp_path)
            raise InternalError(WRITE_FAILED)

        logger.debug(f"Stored {content_size} bytes at {target}")
        return content_size

    async def _discard(self, temp_path: Path):
        if await aiofiles.os.path.exists(temp_path):
            await aiofiles.os.unlink(temp_path)

    async def delete_file(self, path: Path):
        """Remove a stored file. Directories are never removed."""
        if await aiofiles.os.path.isdir(path):
            raise BadRequestError(NOT_A_FILE)

        try:
            await aiofiles.os.remove(path)
        except (FileNotFoundError, NotADirectoryError):
            raise NotFoundError(FILE_NOT_FOUND)
        except OSError as e:
            logger.error(f"Error deleting {path}: {str(e)}", exc_info=True)
            raise InternalError(DELETE_FAILED)
