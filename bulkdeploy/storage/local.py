"""
Directory-backed content-addressed storage.

Stands in for IPFS on rehearsal runs: blobs are stored by their sha256 hash,
and public URLs are file:// URIs the store can read back itself.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from ..errors import StorageError


class LocalContentStore:
    """
    Content-addressed storage for ciphertext blobs.

    Blobs are stored in a two-level directory structure using
    the first 2 characters of the hash as the prefix:

        <root>/content/ab/ab1234...bin
    """

    def __init__(self, root: Path):
        self.root = root
        self.content_dir = root / "content"

    def _content_path(self, cid: str) -> Path:
        return self.content_dir / cid[:2] / f"{cid}.bin"

    @staticmethod
    def compute_hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def add(self, data: bytes) -> str:
        """Store bytes and return their content id. Idempotent."""
        cid = self.compute_hash(data)
        path = self._content_path(cid)
        if path.exists():
            return cid

        path.parent.mkdir(parents=True, exist_ok=True)
        # Write atomically (write to temp, then rename)
        temp_path = path.with_suffix(".tmp")
        temp_path.write_bytes(data)
        temp_path.replace(path)
        return cid

    def public_url(self, cid: str) -> str:
        return self._content_path(cid).resolve().as_uri()

    def multiaddr(self, cid: str) -> str:
        return f"/sha256/{cid}"

    def fetch(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme != "file":
            raise StorageError(f"Local store cannot fetch {parsed.scheme}:// URLs")
        path = Path(url2pathname(parsed.path))
        if not path.is_file():
            raise StorageError(f"Content not found: {path.name}")
        return path.read_bytes()

    def verify(self, cid: str) -> bool:
        """True if the blob exists and still hashes to its id."""
        path = self._content_path(cid)
        if not path.exists():
            return False
        return self.compute_hash(path.read_bytes()) == cid
