import threading
import uuid
from typing import Dict


class BlobStore:
    """
    Keeps encoded image bytes reachable through ephemeral "blob:" URLs
    until they are revoked.
    """

    PREFIX = "blob:"

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}
        # Flask may serve requests from several threads.
        self._lock = threading.Lock()

    def create_object_url(self, data: bytes) -> str:
        url = f"{self.PREFIX}{uuid.uuid4()}"
        with self._lock:
            self._blobs[url] = bytes(data)
        return url

    def resolve(self, url: str) -> bytes:
        """Bytes behind *url*; KeyError if it was never created or already revoked."""
        with self._lock:
            return self._blobs[url]

    def revoke_object_url(self, url: str) -> None:
        with self._lock:
            self._blobs.pop(url, None)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._blobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
