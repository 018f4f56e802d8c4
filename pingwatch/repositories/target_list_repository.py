"""Target List Repository - Reads and writes monitored address lists."""
import re
from typing import Iterable, List, Optional, Tuple

from pingwatch.core.constants import FILE_ENCODING
from pingwatch.core.errors import ExportError
from pingwatch.core.logger import logger
from pingwatch.core.target import MonitorTarget
from pingwatch.repositories.file_utils import atomic_write

CSV_HEADER = "address,host"

_COMMENT_PREFIXES = ("[", "#", ";", "'")
_WHITESPACE = re.compile(r"\s+")


class TargetListRepository:
    """
    Plain-text target lists.

    Accepted line formats:
    - Saved CSV (first line is the "address,host" header)
    - "address host name words" separated by spaces or tabs
    - "address,host"
    - a bare address
    Blank lines and lines starting with [ # ; ' are ignored.
    """

    def __init__(self, encoding: str = FILE_ENCODING):
        self._encoding = encoding

    def load(self, path: str) -> List[MonitorTarget]:
        """Read a list; targets are numbered from 1 in file order."""
        with open(path, "r", encoding=self._encoding) as f:
            lines = f.read().splitlines()

        saved_csv = bool(lines) and lines[0].strip().replace(" ", "").lower() == CSV_HEADER
        if saved_csv:
            lines = lines[1:]

        targets = []
        for line in lines:
            parsed = parse_target_line(line, saved_csv)
            if parsed is None:
                continue
            targets.append(MonitorTarget(len(targets) + 1, *parsed))

        logger.info(f"[TargetListRepository] Loaded {len(targets)} targets from {path}")
        return targets

    def save(self, path: str, targets: Iterable[MonitorTarget]) -> None:
        """
        Write targets in the saved CSV format.

        Raises:
            ExportError: The file could not be written
        """
        rows = [CSV_HEADER]
        rows.extend(f"{t.address},{t.host}" for t in targets if t.address)
        if not atomic_write(path, "\n".join(rows) + "\n", self._encoding):
            raise ExportError(f"Could not write target list to {path}")
        logger.info(f"[TargetListRepository] Saved {len(rows) - 1} targets to {path}")


def parse_target_line(line: str, saved_csv: bool = False) -> Optional[Tuple[str, str]]:
    """Split one list line into (address, host); None for blank or comment lines."""
    stripped = line.strip()
    if not stripped or stripped.startswith(_COMMENT_PREFIXES):
        return None
    address, host = _split_csv(stripped) if saved_csv else _split_line(stripped)
    if not address:
        return None
    return address, host


def _split_csv(line: str) -> Tuple[str, str]:
    parts = [p.strip() for p in line.split(",", 1)]
    return parts[0], parts[1] if len(parts) > 1 else ""


def _split_line(line: str) -> Tuple[str, str]:
    parts = _WHITESPACE.split(line, 1)
    if len(parts) > 1:
        return parts[0], _WHITESPACE.sub(" ", parts[1]).strip()
    if "," in line:
        return _split_csv(line)
    return line, ""
