"""Storage backend factory: local disk, Qiniu or WebDAV, selected by driver name."""
import secrets
import time
from typing import Any

from pydantic import ValidationError

from filestore.core.config import (
    FilesystemDriver,
    LocalDriverConfig,
    QiniuDriverConfig,
    WebdavDriverConfig,
    get_settings,
)
from filestore.storage.base import StorageBackend
from filestore.storage.exceptions import StorageError
from filestore.storage.local import LocalStorage


def _validate(model, driver: FilesystemDriver):
    try:
        return model.model_validate(driver.config)
    except ValidationError as e:
        raise ValueError(f"Invalid {driver.name} storage config: {e}") from e


def new_storage(driver: FilesystemDriver | dict[str, Any]) -> StorageBackend:
    """Build a backend from a driver description. SDK modules load only for the selected driver."""
    if not isinstance(driver, FilesystemDriver):
        driver = FilesystemDriver.model_validate(driver)
    if not driver.name:
        raise ValueError("storage driver name is required")

    if driver.name == "local":
        cfg = _validate(LocalDriverConfig, driver)
        return LocalStorage(root=cfg.root, base_url=cfg.base_url)
    if driver.name == "qiniu":
        from filestore.storage.qiniu import Bucket, QiniuStorage
        cfg = _validate(QiniuDriverConfig, driver)
        bucket = Bucket(
            name=cfg.bucket,
            domain=cfg.domain,
            timestamp_enc_key=cfg.timestamp_enc_key,
            private=cfg.private,
        )
        return QiniuStorage(cfg.access_key, cfg.access_secret, bucket)
    if driver.name == "webdav":
        from filestore.storage.webdav import WebdavStorage
        cfg = _validate(WebdavDriverConfig, driver)
        fs = WebdavStorage(cfg.uri, cfg.username, cfg.password)
        fs.connect()
        return fs
    raise ValueError(f"{driver.name} is not a supported storage driver")


def get_storage() -> StorageBackend:
    """Return the configured storage backend."""
    return new_storage(get_settings().storage_driver())


def build_upload_key(upload_dir: str, file_ext: str) -> str:
    """Random, date-sharded object key: <dir>/YYYY/MM/DD/<32 hex>.<ext>."""
    upload_dir = upload_dir.strip("/")
    file_ext = file_ext.strip(".")
    date_path = time.strftime("%Y/%m/%d")
    return f"{upload_dir}/{date_path}/{secrets.token_hex(16)}.{file_ext}"


def as_qiniu(fs: StorageBackend):
    """Return fs when it is the Qiniu backend (zip, censor, upload tokens), else None."""
    from filestore.storage.qiniu import QiniuStorage
    return fs if isinstance(fs, QiniuStorage) else None


def must_as_qiniu(fs: StorageBackend):
    qn = as_qiniu(fs)
    if qn is None:
        raise TypeError(f"storage backend is not qiniu: {fs.name}")
    return qn


__all__ = [
    "StorageBackend",
    "StorageError",
    "LocalStorage",
    "new_storage",
    "get_storage",
    "build_upload_key",
    "as_qiniu",
    "must_as_qiniu",
]
