"""Device environment probe: foreground state and free storage."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import psutil

logger = logging.getLogger(__name__)


class DeviceEnvironment(Protocol):
    def is_foreground(self) -> bool: ...

    def estimate_free_space(self) -> int | None: ...


class LocalDeviceEnvironment:
    """
    Probe for the local machine.

    The foreground flag belongs to the host application, which flips it on
    its own lifecycle events; free space comes from the filesystem holding
    the cache directory.
    """

    def __init__(self, storage_path: str | Path, *, foreground: bool = True) -> None:
        self.storage_path = Path(storage_path)
        self._foreground = foreground

    def set_foreground(self, foreground: bool) -> None:
        if foreground != self._foreground:
            logger.info('Application moved to %s', 'foreground' if foreground else 'background')
        self._foreground = foreground

    def is_foreground(self) -> bool:
        return self._foreground

    def estimate_free_space(self) -> int | None:
        """Free bytes on the cache filesystem, or None when unknown."""
        # The cache directory may not exist yet; probe its nearest existing parent
        path = self.storage_path
        while not path.exists() and path != path.parent:
            path = path.parent
        try:
            return int(psutil.disk_usage(str(path)).free)
        except (OSError, RuntimeError) as e:
            logger.warning('Could not estimate free space at %s: %s', path, e)
            return None
