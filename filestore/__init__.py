"""Unified storage over local disk, Qiniu Kodo and WebDAV."""
from filestore.storage import (
    LocalStorage,
    StorageBackend,
    StorageError,
    as_qiniu,
    build_upload_key,
    get_storage,
    must_as_qiniu,
    new_storage,
)

__version__ = "0.1.0"

__all__ = [
    "LocalStorage",
    "StorageBackend",
    "StorageError",
    "as_qiniu",
    "build_upload_key",
    "get_storage",
    "must_as_qiniu",
    "new_storage",
]
