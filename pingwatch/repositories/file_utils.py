"""File utilities for atomic writes, appends and safe file names."""
import os
import re

from pingwatch.core.constants import FILE_ENCODING
from pingwatch.core.logger import logger

MAX_FILENAME_LENGTH = 120

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str) -> str:
    """Make a string usable as part of a file name."""
    if not name:
        return "unknown"
    safe = _INVALID_FILENAME_CHARS.sub("_", name).strip()
    if not safe:
        return "unknown"
    return safe[:MAX_FILENAME_LENGTH]


def atomic_write(file_path: str, content: str, encoding: str = FILE_ENCODING) -> bool:
    """
    Atomically write to a file to prevent corruption.
    Uses a temporary file and rename operation.
    """
    temp_path = file_path + ".tmp"
    try:
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(temp_path, "w", encoding=encoding, newline="") as f:
            f.write(content)
        os.replace(temp_path, file_path)
        return True
    except (OSError, LookupError) as e:
        logger.error(f"Failed to write file {file_path}: {e}")
        try:
            if os.path.exists(temp_path):
                os.remove(temp_path)
        except OSError:
            pass
        return False


def append_text(file_path: str, content: str, encoding: str = FILE_ENCODING) -> bool:
    """Append to a file, creating it and its folder when missing."""
    try:
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(file_path, "a", encoding=encoding) as f:
            f.write(content)
        return True
    except (OSError, LookupError) as e:
        logger.error(f"Failed to append to {file_path}: {e}")
        return False
