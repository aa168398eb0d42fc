"""Read-only filesystem access used when scanning install layouts."""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class FileSystem:
    def exists(self, path: str | os.PathLike[str]) -> bool:
        return Path(path).exists()

    def is_file(self, path: str | os.PathLike[str]) -> bool:
        return Path(path).is_file()

    def list_dirs(self, path: str | os.PathLike[str]) -> list[str]:
        """:returns: the child directories of ``path`` sorted by name, empty if ``path`` cannot be read"""
        try:
            children = sorted(Path(path).iterdir())
        except OSError:
            LOGGER.debug("failed to list %s", path, exc_info=True)
            return []
        return [str(child) for child in children if child.is_dir()]


__all__ = [
    "FileSystem",
]
