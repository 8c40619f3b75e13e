import logging
import os
import posixpath
from dataclasses import dataclass
from pathlib import Path

from upload_server.logger_config import LOGGER_NAME
from upload_server.services.errors import Forbidden

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class ConfinedPath:
    """A storage location known to lie inside the store directory.

    ``relative`` is the path as the client addressed it (after the upload
    prefix); it is what the chat server signed. ``absolute`` is where the
    object lives on disk.
    """
    relative: str
    absolute: Path


class PathResolver:
    def __init__(self, store_dir: Path, upload_subdir: str):
        self.store_dir = Path(store_dir).resolve()
        self.prefix = posixpath.join("/", upload_subdir).rstrip("/")

    def resolve(self, url_path: str) -> ConfinedPath:
        """Map a request URL path to a location inside the store directory."""
        file_store_path = url_path
        if self.prefix and file_store_path.startswith(self.prefix):
            file_store_path = file_store_path[len(self.prefix):]

        if file_store_path in ("", "/"):
            logger.info("Empty request path")
            raise Forbidden("Empty request path")
        if file_store_path.startswith("/"):
            file_store_path = file_store_path[1:]

        # Lexical check only, the filesystem is never consulted
        normalized = posixpath.normpath(file_store_path.lstrip("/"))
        if "\x00" in normalized:
            raise Forbidden("Invalid character in path")
        if normalized in (".", "..") or normalized.startswith("../"):
            logger.warning(f"Rejected path escaping the store directory: {url_path}")
            raise Forbidden("Path outside of store directory")

        absolute = self.store_dir.joinpath(*normalized.split("/"))
        if os.path.commonpath([self.store_dir, absolute]) != str(self.store_dir):
            logger.warning(f"Rejected path escaping the store directory: {url_path}")
            raise Forbidden("Path outside of store directory")

        return ConfinedPath(relative=file_store_path, absolute=absolute)
