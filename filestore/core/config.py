"""Application settings and storage driver configs."""
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings


class LocalDriverConfig(BaseModel):
    """Local disk. Files are confined to root when it is set."""

    root: str = ""
    base_url: str | None = None  # HTTP prefix of the /files router, enables signed URLs


class QiniuDriverConfig(BaseModel):
    access_key: str
    access_secret: str
    bucket: str
    domain: str
    timestamp_enc_key: str = ""
    private: bool = False


class WebdavDriverConfig(BaseModel):
    uri: str
    username: str = ""
    password: str = ""


class FilesystemDriver(BaseModel):
    """Driver name plus its free-form config mapping (validated by the factory)."""

    name: str = ""
    config: dict[str, Any] = {}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "FilesystemDriver":
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Driver config must be a mapping: {path}")
        return cls.model_validate(data)


class Settings(BaseSettings):
    """App config from env."""

    app_name: str = "filestore"
    debug: bool = False
    # Structured logging: set LOG_JSON=1 for one-JSON-object-per-line
    log_json: bool = False
    # If set, /metrics requires the X-Metrics-Secret header
    metrics_secret: str | None = None

    # Signs local file URLs served by /files
    secret_key: str = "dev-secret-change-in-production"
    signed_url_ttl_seconds: int = 300

    # Storage: local | qiniu | webdav. A YAML driver file wins over the fields below.
    storage_backend: str = "local"
    storage_config_file: str | None = None

    # Local disk
    local_root: str = "./storage"
    local_base_url: str | None = None
    local_public_read: bool = False  # serve /files without a token

    # Qiniu (only used when storage_backend=qiniu)
    qiniu_access_key: str = ""
    qiniu_secret_key: str = ""
    qiniu_bucket: str = ""
    qiniu_domain: str = ""
    qiniu_timestamp_enc_key: str = ""
    qiniu_private: bool = False
    qiniu_censor_api: str = "https://ai.qiniuapi.com/v3/image/censor"

    # WebDAV (only used when storage_backend=webdav)
    webdav_uri: str = ""
    webdav_username: str = ""
    webdav_password: str = ""

    # Outbound HTTP timeouts (seconds)
    http_timeout_seconds: float = 10.0
    image_info_timeout_seconds: float = 5.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def storage_driver(self) -> FilesystemDriver:
        """Driver described by the YAML file, else by the storage_* / <backend>_* fields."""
        if self.storage_config_file:
            return FilesystemDriver.from_yaml(self.storage_config_file)
        name = self.storage_backend
        if name == "local":
            config = {"root": self.local_root, "base_url": self.local_base_url}
        elif name == "qiniu":
            config = {
                "access_key": self.qiniu_access_key,
                "access_secret": self.qiniu_secret_key,
                "bucket": self.qiniu_bucket,
                "domain": self.qiniu_domain,
                "timestamp_enc_key": self.qiniu_timestamp_enc_key,
                "private": self.qiniu_private,
            }
        elif name == "webdav":
            config = {
                "uri": self.webdav_uri,
                "username": self.webdav_username,
                "password": self.webdav_password,
            }
        else:
            config = {}
        return FilesystemDriver(name=name, config=config)


@lru_cache
def get_settings() -> Settings:
    return Settings()
