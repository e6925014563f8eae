import os
from typing import BinaryIO
from datetime import datetime, timezone
from .base import StorageBackend

MEDIA_ROOT = os.getenv("MEDIA_ROOT", "./uploads")


class LocalStorage(StorageBackend):
    def __init__(self, root: str = MEDIA_ROOT):
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        # keys come from URLs, never let them leave the media root
        return os.path.join(self.root, self._sanitize(key))

    def save(self, fileobj: BinaryIO, filename: str) -> str:
        ts = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        key = f"{ts}_{self._sanitize(filename)}"
        with open(self._path(key), "wb") as f:
            f.write(fileobj.read())
        return key

    def open(self, key: str) -> BinaryIO:
        return open(self._path(key), "rb")

    def delete(self, key: str) -> bool:
        try:
            os.remove(self._path(key))
            return True
        except FileNotFoundError:
            return False
