import os
import re
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional


class StorageBackend(ABC):
    """Where uploaded profile pictures live."""

    def _sanitize(self, filename: str) -> str:
        name = os.path.basename(filename)
        return re.sub(r"[^A-Za-z0-9._-]+", "_", name) or "file"

    @abstractmethod
    def save(self, fileobj: BinaryIO, filename: str) -> str:
        """Store the file and return its key."""

    @abstractmethod
    def open(self, key: str) -> BinaryIO:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    def get_file_url(self, key: str) -> Optional[str]:
        """Direct download URL, or None when the API has to serve the bytes."""
        return None
