"""Object storage for samples and generated audio.

Objects live on local disk under ``STORAGE_DIR`` with keys shaped ``{user_id}/{project_id}/...``.
Sample locations may also be absolute http(s) URLs, which are fetched over the network.
"""

import logging
import shutil
from pathlib import Path
from time import monotonic

import httpx

from app.config import get_settings
from app.errors import ErrorKind, GenerationError

logger = logging.getLogger("voice_clone")


class StorageService:
    """Reads and writes bucket objects by key."""

    def __init__(
        self,
        root: str | Path,
        public_url: str = "/api/v1/storage",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")
        self._transport = transport

    def _path_for(self, key: str) -> Path:
        """Resolve a key to a file path, refusing keys that escape the bucket."""
        root = self.root.resolve()
        path = (root / key.lstrip("/")).resolve()
        if path != root and root not in path.parents:
            raise GenerationError(ErrorKind.INVALID_INPUT, f"Invalid storage key '{key}'")
        return path

    def public_url_for(self, key: str) -> str:
        return f"{self.public_url}/{key.lstrip('/')}"

    def key_from_location(self, location: str) -> str:
        """Turn a stored location (key or public URL) back into a key."""
        prefix = self.public_url + "/"
        if location.startswith(prefix):
            return location[len(prefix) :]
        return location.lstrip("/")

    def upload(self, key: str, content: bytes, upsert: bool = True) -> str:
        """Write an object. Returns its key."""
        path = self._path_for(key)
        if path.exists() and not upsert:
            raise GenerationError(ErrorKind.STORAGE_ERROR, f"Object '{key}' already exists")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".part")
            tmp_path.write_bytes(content)
            tmp_path.replace(path)
        except OSError as e:
            raise GenerationError(ErrorKind.STORAGE_ERROR, f"Failed to upload audio to storage: {e}") from e
        return key

    def download(self, location: str, timeout: float = 30.0, max_bytes: int | None = None) -> bytes:
        """Read an object by key, public URL, or remote http(s) URL.

        ``timeout`` bounds the whole remote transfer. Objects larger than ``max_bytes`` are
        refused without being read in full.
        """
        if location.startswith(("http://", "https://")):
            return self._fetch_remote(location, timeout, max_bytes)

        path = self._path_for(self.key_from_location(location))
        try:
            if max_bytes is not None and path.stat().st_size > max_bytes:
                raise GenerationError(ErrorKind.STORAGE_ERROR, f"'{location}' exceeds {max_bytes} bytes")
            return path.read_bytes()
        except OSError as e:
            raise GenerationError(ErrorKind.STORAGE_ERROR, f"Failed to read '{location}': {e}") from e

    def _fetch_remote(self, url: str, timeout: float, max_bytes: int | None) -> bytes:
        deadline = monotonic() + timeout
        chunks: list[bytes] = []
        size = 0
        try:
            with httpx.Client(transport=self._transport, timeout=timeout, follow_redirects=True) as client:
                with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise GenerationError(
                            ErrorKind.STORAGE_ERROR, f"Failed to fetch '{url}': HTTP {response.status_code}"
                        )
                    declared = response.headers.get("content-length")
                    if max_bytes is not None and declared and declared.isdigit() and int(declared) > max_bytes:
                        raise GenerationError(ErrorKind.STORAGE_ERROR, f"'{url}' exceeds {max_bytes} bytes")

                    for chunk in response.iter_bytes():
                        size += len(chunk)
                        if max_bytes is not None and size > max_bytes:
                            raise GenerationError(ErrorKind.STORAGE_ERROR, f"'{url}' exceeds {max_bytes} bytes")
                        if monotonic() > deadline:
                            raise GenerationError(
                                ErrorKind.STORAGE_ERROR, f"Fetching '{url}' took longer than {timeout:.0f}s"
                            )
                        chunks.append(chunk)
        except httpx.HTTPError as e:
            raise GenerationError(ErrorKind.STORAGE_ERROR, f"Failed to fetch '{url}': {e}") from e
        return b"".join(chunks)

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def path(self, key: str) -> Path:
        return self._path_for(key)

    def delete_prefix(self, prefix: str) -> int:
        """Delete every object under ``prefix``. Returns the number of files removed."""
        target = self._path_for(prefix)
        if not target.exists():
            return 0
        if target.is_file():
            target.unlink()
            return 1
        removed = sum(1 for p in target.rglob("*") if p.is_file())
        shutil.rmtree(target)
        return removed


_storage_service: StorageService | None = None


def get_storage_service() -> StorageService:
    """Get singleton storage service instance."""
    global _storage_service
    if _storage_service is None:
        settings = get_settings()
        _storage_service = StorageService(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_URL)
    return _storage_service
