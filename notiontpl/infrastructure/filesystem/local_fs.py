"""Concrete implementation of the FileSystem interface for local files.

Uses `pathlib` for path handling and `aiofiles` for async I/O of templates
and blueprints.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiofiles

from notiontpl.domain.interfaces.file_system import FileSystem
from notiontpl.domain.models.common import FilePath

logger = logging.getLogger(__name__)


class LocalFileSystem(FileSystem):
    """Implementation of FileSystem for the local disk."""

    def __init__(self, base_dir: Optional[Path] = None):
        """Initializes the adapter.

        Args:
            base_dir: Directory relative paths are resolved against (cwd if None).
        """
        self.base_dir = base_dir

    def resolve(self, file_path: FilePath) -> Path:
        path = Path(file_path).expanduser()
        if not path.is_absolute():
            path = (self.base_dir or Path.cwd()) / path
        return path.resolve()

    async def read_file(self, file_path: FilePath) -> str:
        path = self.resolve(file_path)
        logger.debug(f"Attempting to read file: {path}")
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
                content = await f.read()
        except PermissionError as e:
            logger.error(f"Permission denied reading file: {path}")
            raise PermissionError(f"Permission denied: {file_path}") from e
        logger.debug(f"Successfully read {len(content)} characters from {path}")
        return content

    async def write_file(self, file_path: FilePath, content: str) -> None:
        """Writes content to a file, creating parent directories first."""
        path = self.resolve(file_path)
        logger.debug(f"Attempting to write {len(content)} characters to file: {path}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, mode='w', encoding='utf-8') as f:
                await f.write(content)
        except PermissionError as e:
            logger.error(f"Permission denied writing file: {path}")
            raise PermissionError(f"Permission denied: {file_path}") from e
        logger.debug(f"Successfully wrote to {path}")

    async def file_exists(self, file_path: FilePath) -> bool:
        path = self.resolve(file_path)
        exists = await asyncio.to_thread(path.is_file)
        logger.debug(f"Checked existence for {path}: {exists}")
        return exists
