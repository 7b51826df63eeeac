"""Storage backend interface: put/get/delete, plain and signed URLs, image size. Implementations: local disk, Qiniu, WebDAV."""
import functools
import io
import time
from abc import ABC, abstractmethod

from PIL import Image, UnidentifiedImageError

from filestore.core.metrics import record_storage_operation
from filestore.storage.exceptions import StorageError


def tracked(operation: str):
    """Count and time calls of a backend method by backend name, operation and result."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(self, *args, **kwargs)
            except Exception:
                record_storage_operation(self.name, operation, ok=False, latency_seconds=time.perf_counter() - started)
                raise
            record_storage_operation(self.name, operation, ok=True, latency_seconds=time.perf_counter() - started)
            return result
        return wrapper
    return decorator


class StorageBackend(ABC):
    """Abstract storage. Missing objects raise FileNotFoundError, other failures StorageError."""

    name: str = ""

    @abstractmethod
    def put(self, path: str, data: bytes) -> None:
        """Write data to path, creating parent directories where the backend has them."""
        ...

    @abstractmethod
    def get(self, path: str) -> bytes:
        """Return the object's bytes."""
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def get_url(self, path: str) -> str:
        """Return the unsigned URL (or absolute path) of the object."""
        ...

    @abstractmethod
    def get_signed_url(self, path: str, expires: int) -> str:
        """Return a URL granting access for `expires` seconds."""
        ...

    def get_image_width_height(self, path: str) -> tuple[int, int]:
        """Return (width, height) of the stored image. Default: download and decode the header."""
        return image_size(self.get(path), path)


def image_size(data: bytes, path: str = "") -> tuple[int, int]:
    """Decode just enough of an image to read its dimensions."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise StorageError(f"Failed to decode image {path}: {e}") from e
    return width, height
