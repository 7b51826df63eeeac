"""Local disk storage: files under a root directory; signed URLs are /files URLs with HMAC tokens."""
import logging
from pathlib import Path
from urllib.parse import quote

from filestore.core.metrics import record_signed_url_mint
from filestore.core.security import create_file_token
from filestore.storage.base import StorageBackend, tracked
from filestore.storage.exceptions import StorageError

_log = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    """
    Local filesystem storage.

    Relative paths resolve under root. When root is configured, absolute
    paths are accepted only if they point inside it. With base_url, URLs
    point at the /files router instead of the filesystem.
    """

    name = "local"

    def __init__(self, root: str = "", base_url: str | None = None, secret_key: str | None = None) -> None:
        self._confined = bool(root)
        self._root = Path(root or ".").resolve()
        self._base_url = base_url.rstrip("/") if base_url else None
        self._secret_key = secret_key

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        """Absolute path for path; StorageError when it escapes root."""
        p = Path(path)
        if not p.is_absolute():
            p = self._root / p
        resolved = p.resolve()
        if self._confined and not resolved.is_relative_to(self._root):
            raise StorageError(f"Path escapes storage root: {path}")
        return resolved

    def key(self, path: str) -> str:
        """Root-relative posix key of path, as used in /files URLs."""
        resolved = self.resolve(path)
        try:
            return resolved.relative_to(self._root).as_posix()
        except ValueError as e:
            raise StorageError(f"Path is outside storage root: {path}") from e

    @tracked("put")
    def put(self, path: str, data: bytes) -> None:
        file_path = self.resolve(path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create directory: {e}") from e
        try:
            file_path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        _log.debug("Wrote %d bytes to %s", len(data), file_path)

    @tracked("get")
    def get(self, path: str) -> bytes:
        file_path = self.resolve(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"Object not found: {path}")
        try:
            return file_path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    @tracked("delete")
    def delete(self, path: str) -> None:
        file_path = self.resolve(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"Object not found: {path}")
        try:
            file_path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def get_url(self, path: str) -> str:
        """base_url/<key> when base_url is set, else the absolute filesystem path."""
        if self._base_url:
            return f"{self._base_url}/{quote(self.key(path))}"
        return str(self.resolve(path))

    def get_signed_url(self, path: str, expires: int) -> str:
        if not self._base_url:
            # A filesystem path carries no signature
            return self.get_url(path)
        key = self.key(path)
        deadline, token = create_file_token(key, expires, self._secret_key)
        record_signed_url_mint(self.name)
        return f"{self._base_url}/{quote(key)}?e={deadline}&token={token}"
