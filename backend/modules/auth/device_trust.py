"""
Remember-me flag storage.

The flag is a small file on the local device: present with the content
"true" means the user opted into longer-lived sessions here. Writes go
through a temp file and os.replace so a crash never leaves a partial flag.
Any read problem counts as "not trusted".
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUSTED = "true"


class FileDeviceTrustStore:
    """Device trust flag persisted as a file."""

    def __init__(self, path: Path):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> bool:
        try:
            return self._path.read_text(encoding="utf-8").strip() == _TRUSTED
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not read device trust flag at {self._path}: {e}")
            return False

    def write(self, trusted: bool) -> None:
        if not trusted:
            self.clear()
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(_TRUSTED, encoding="utf-8")
        os.replace(tmp, self._path)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


class InMemoryDeviceTrustStore:
    """
    Device trust flag kept in memory.

    For tests and degraded mode, where nothing should touch the disk.
    """

    def __init__(self, trusted: bool = False):
        self._trusted = trusted

    def read(self) -> bool:
        return self._trusted

    def write(self, trusted: bool) -> None:
        self._trusted = trusted

    def clear(self) -> None:
        self._trusted = False
