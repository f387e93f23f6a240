"""
Local File Enumerator

Lists candidate resource files (e.g. VPN configurations) on the local disk.
Implements FileEnumeratorPort from core/ports.py.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import aiofiles.os

from homebrain.core.errors import LookupFailureError

logger = logging.getLogger(__name__)


class LocalFileEnumerator:
    """
    Async directory listing.

    Example:
        files = await LocalFileEnumerator().get_dir_files("~/vpn")
        # ["vpn_france_lyon.ovpn", "vpn_france_paris.ovpn"]
    """

    async def get_dir_files(self, path: str) -> List[str]:
        """
        Returns regular file names in a directory, sorted.

        Raises:
            LookupFailureError: If the directory cannot be read
        """
        directory = Path(path).expanduser()

        try:
            names = await aiofiles.os.listdir(directory)
        except OSError as e:
            logger.error(f"Cannot list {directory}: {e}")
            raise LookupFailureError(f"Cannot list {directory}: {e}") from e

        files = []
        for name in names:
            if await aiofiles.os.path.isfile(directory / name):
                files.append(name)

        return sorted(files)
