import logging
import stat as stat_module
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Optional

import aiofiles
import aiofiles.os
from starlette.requests import ClientDisconnect

from upload_server.logger_config import LOGGER_NAME
from upload_server.services.errors import Conflict, InternalError, LengthMismatch, NotFound
from upload_server.services.path_resolver import ConfinedPath

logger = logging.getLogger(LOGGER_NAME)

CHUNK_SIZE = 8192  # 8KB chunks


@dataclass(frozen=True)
class FileInfo:
    size: int
    is_dir: bool


class FileStore:
    """Write-once storage of uploaded files below the store directory.

    Objects are never overwritten: creation uses exclusive mode, so of two
    concurrent uploads to the same path exactly one wins and the other gets
    ``Conflict``.
    """

    def __init__(self, store_dir: Path):
        self.store_dir = store_dir

    async def initialize(self):
        """Make sure the store directory exists."""
        await aiofiles.os.makedirs(self.store_dir, exist_ok=True)
        logger.debug(f"Store directory created/verified: {self.store_dir}")

    async def create(self, path: ConfinedPath, chunks: AsyncIterable[bytes],
                     expected_size: Optional[int] = None) -> int:
        """Store the streamed body at ``path`` and return the number of bytes written.

        Args:
            path: Target location, must not exist yet
            chunks: The request body
            expected_size: Declared length; when given, a body of any other
                length is rejected and the new file removed

        Raises:
            Conflict: the target already exists
            LengthMismatch: the body length differs from ``expected_size``
            InternalError: directories or file could not be created or written
        """
        target = path.absolute
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not make directories for {path.relative}: {e}")
            raise InternalError()

        try:
            f = await aiofiles.open(target, "xb")
        except FileExistsError:
            logger.info(f"Creating new file failed, {path.relative} already exists")
            raise Conflict()
        except OSError as e:
            # A directory or file where a parent directory should be
            logger.error(f"Creating new file {path.relative} failed: {e}")
            raise InternalError()

        written = 0
        try:
            async for chunk in chunks:
                written += len(chunk)
                await f.write(chunk)
        except (OSError, ClientDisconnect) as e:
            # The partial file stays on disk
            logger.error(f"Writing to new file {path.relative} failed after {written} bytes: {e!r}")
            raise InternalError()
        finally:
            await f.close()

        if expected_size is not None and written != expected_size:
            logger.warning(
                f"Upload of {path.relative} sent {written} bytes, declared {expected_size}; removing file"
            )
            try:
                await aiofiles.os.remove(target)
            except OSError as e:
                logger.error(f"Removing rejected upload {path.relative} failed: {e}")
                raise InternalError()
            raise LengthMismatch("Content length mismatch")

        logger.info(f"Successfully written {written} bytes to file {path.relative}")
        return written

    async def stat(self, path: ConfinedPath) -> FileInfo:
        try:
            st = await aiofiles.os.stat(path.absolute)
        except (FileNotFoundError, NotADirectoryError):
            logger.info(f"Getting file information failed, {path.relative} not found")
            raise NotFound()
        return FileInfo(size=st.st_size, is_dir=stat_module.S_ISDIR(st.st_mode))

    async def open_for_read(self, path: ConfinedPath, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
        async with aiofiles.open(path.absolute, "rb") as f:
            while chunk := await f.read(chunk_size):
                yield chunk
