"""WebDAV storage backend via webdav4 (httpx-based). Signed URLs embed basic-auth credentials."""
import io
import logging
import posixpath
from urllib.parse import quote, unquote, urlsplit, urlunsplit

import httpx
from webdav4.client import Client, ClientError, ResourceNotFound

from filestore.core.logging_redaction import redact_url
from filestore.core.metrics import record_signed_url_mint
from filestore.storage.base import StorageBackend, tracked
from filestore.storage.exceptions import StorageError

_log = logging.getLogger(__name__)


def _get_client(uri: str, username: str, password: str) -> Client:
    auth = (username, password) if username else None
    return Client(uri, auth=auth)


class WebdavStorage(StorageBackend):
    """WebDAV backend rooted at uri."""

    name = "webdav"

    def __init__(self, uri: str, username: str = "", password: str = "") -> None:
        if not uri:
            raise ValueError("WebDAV storage requires uri")
        self._uri = uri
        self._username = username
        self._password = password
        self._client = _get_client(uri, username, password)

    def connect(self) -> None:
        """List the root collection; fails fast on bad uri or credentials."""
        try:
            self._client.ls("/", detail=False)
        except (ClientError, httpx.HTTPError) as e:
            raise StorageError(f"Failed to connect to WebDAV server {redact_url(self._uri)}: {e}") from e
        _log.info("Connected to WebDAV server %s", redact_url(self._uri))

    @tracked("put")
    def put(self, path: str, data: bytes) -> None:
        directory = posixpath.dirname(path.strip("/"))
        try:
            if directory:
                self._client.makedirs(directory, exist_ok=True)
        except (ClientError, httpx.HTTPError) as e:
            raise StorageError(f"Failed to create directory: {e}") from e
        try:
            self._client.upload_fileobj(io.BytesIO(data), path, overwrite=True)
        except (ClientError, httpx.HTTPError) as e:
            raise StorageError(f"Failed to upload {path}: {e}") from e

    @tracked("get")
    def get(self, path: str) -> bytes:
        buf = io.BytesIO()
        try:
            self._client.download_fileobj(path, buf)
        except ResourceNotFound as e:
            raise FileNotFoundError(f"Object not found: {path}") from e
        except (ClientError, httpx.HTTPError) as e:
            raise StorageError(f"Failed to download {path}: {e}") from e
        return buf.getvalue()

    @tracked("delete")
    def delete(self, path: str) -> None:
        try:
            self._client.remove(path)
        except ResourceNotFound as e:
            raise FileNotFoundError(f"Object not found: {path}") from e
        except (ClientError, httpx.HTTPError) as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e

    def exists(self, path: str) -> bool:
        try:
            return self._client.exists(path)
        except (ClientError, httpx.HTTPError) as e:
            raise StorageError(f"Failed to stat {path}: {e}") from e

    def get_url(self, path: str) -> str:
        """Server URL without credentials."""
        return self._uri.rstrip("/") + "/" + path.lstrip("/")

    def get_signed_url(self, path: str, expires: int) -> str:
        """URL with username:password userinfo; expires is ignored (basic auth does not expire)."""
        parts = urlsplit(self._uri)
        host = parts.netloc.rsplit("@", 1)[-1]
        if self._username:
            userinfo = quote(self._username, safe="")
            if self._password:
                userinfo += ":" + quote(self._password, safe="")
            host = f"{userinfo}@{host}"
        full_path = posixpath.normpath(posixpath.join(unquote(parts.path) or "/", path.lstrip("/")))
        full_path = quote(full_path, safe="/~@!$&'()*+,;=:")
        record_signed_url_mint(self.name)
        return urlunsplit((parts.scheme, host, full_path, parts.query, parts.fragment))
