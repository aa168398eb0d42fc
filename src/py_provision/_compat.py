"""Platform compatibility utilities for interpreter provisioning."""

from __future__ import annotations

import functools
import logging
import os
import sys
import tempfile

IS_WIN = sys.platform == "win32"
IS_MAC = sys.platform == "darwin"
IS_LINUX = sys.platform.startswith("linux")

LOGGER = logging.getLogger(__name__)


@functools.lru_cache(maxsize=1)
def fs_is_case_sensitive() -> bool:
    with tempfile.NamedTemporaryFile(prefix="TmP") as tmp_file:
        result = not os.path.exists(tmp_file.name.lower())
    LOGGER.debug("filesystem is %scase-sensitive", "" if result else "not ")
    return result


def fs_path_id(path: str, *, windows: bool = IS_WIN) -> str:
    """:returns: a key under which two spellings of the same interpreter path compare equal"""
    if windows:
        return path.replace("/", "\\").casefold()
    return path.casefold() if not fs_is_case_sensitive() else path


__all__ = [
    "IS_LINUX",
    "IS_MAC",
    "IS_WIN",
    "fs_is_case_sensitive",
    "fs_path_id",
]
