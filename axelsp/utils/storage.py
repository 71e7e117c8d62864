"""Storage directory management for downloaded server binaries."""

import logging
import os
from pathlib import Path


class StorageScope:
    """Owns the per-installation directory the server binary is cached in.

    No other process is expected to write into this directory.
    """

    def __init__(self, root: os.PathLike):
        """Initialize the storage scope.

        Args:
            root: Path to the storage directory. It is created lazily.
        """
        self.root = Path(root).expanduser().absolute()
        self.logger = logging.getLogger("axelsp.storage")

    def ensure(self) -> Path:
        """Create the storage directory if it does not exist yet.

        Returns:
            The storage directory.
        """
        if not self.root.is_dir():
            self.logger.info(f"Creating storage directory: {self.root}")
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def path_for(self, name: str) -> Path:
        """Get the path of a file inside the storage directory.

        Args:
            name: File name.

        Returns:
            The absolute file path.
        """
        return self.root / name

    def remove(self, name: str) -> bool:
        """Delete a file from the storage directory.

        Args:
            name: File name.

        Returns:
            True if a file was removed, False if there was nothing to remove.
        """
        target = self.path_for(name)
        if not target.exists():
            return False
        target.unlink()
        self.logger.info(f"Removed {target}")
        return True
