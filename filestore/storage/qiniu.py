"""
Qiniu Kodo storage backend.

Uploads, deletes and persistent jobs go through the qiniu SDK; downloads,
existence checks and image info are plain HTTP GET/HEAD requests on signed
URLs. Two signing schemes exist, chosen per bucket:

* private bucket: download token, HMAC-SHA1 over the URL incl. deadline
  (``?e=<deadline>&token=<ak>:<sig>``), minted by ``Auth.private_download_url``
* public bucket with CDN timestamp antileech: ``?sign=<md5>&t=<hex deadline>``
"""
import logging
import time
from dataclasses import dataclass
from urllib.parse import quote, unquote, urlsplit

import httpx
from qiniu import Auth, BucketManager, PersistentFop, create_timestamp_anti_leech_url, put_data

from filestore.core.config import get_settings
from filestore.core.logging_redaction import redact_url
from filestore.core.metrics import record_signed_url_mint
from filestore.storage.base import StorageBackend, tracked
from filestore.storage.exceptions import StorageError, ZipJobError
from filestore.storage.fops import MkZipArgs, PrefopResult, ZipOptions

_log = logging.getLogger(__name__)

# Lifetime of the URLs/tokens this backend mints for its own requests
INTERNAL_TOKEN_TTL = 180

# Query params carrying a previous signature; stripped before re-signing
SIGN_PARAMS = ("sign=", "t=", "e=", "token=")

# Kodo API status for "no such file or directory"
QINIU_NOT_FOUND = 612


def remove_query_sign_params(qs: str) -> str:
    """Drop sign/t/e/token parts from a raw query string, keeping the rest verbatim."""
    if not qs:
        return ""
    return "&".join(part for part in qs.split("&") if not part.startswith(SIGN_PARAMS))


def _escaped_path(path: str) -> str:
    return quote(path, safe="/:@!$&'()*+,;=-._~%")


def create_timestamp_antileech_url(url: str, encrypt_key: str, expires: int) -> str:
    """Append CDN timestamp antileech params: t = hex deadline, sign = md5(key + path + t)."""
    parts = urlsplit(url)
    host = f"{parts.scheme}://{parts.netloc}"
    # the SDK escapes the file name itself
    file_name = unquote(parts.path).lstrip("/")
    deadline = int(time.time()) + int(expires)
    return create_timestamp_anti_leech_url(host, file_name, parts.query, encrypt_key, deadline)


@dataclass
class Bucket:
    name: str
    domain: str
    timestamp_enc_key: str = ""
    private: bool = False

    def scope(self, save_key: str) -> str:
        return f"{self.name}:{save_key}"

    def url(self, path: str) -> str:
        return f"{self.domain.rstrip('/')}/{path.lstrip('/')}"

    def antileech_signed_url(self, path: str, expires: int) -> str:
        """Public-bucket URL, timestamp-signed when the bucket has an encryption key."""
        if path.startswith("http"):
            rest_url = path
        else:
            parts = urlsplit(self.url(path))
            rest_url = f"{parts.scheme}://{parts.netloc}{_escaped_path(parts.path)}"
            qs = remove_query_sign_params(parts.query)
            if qs:
                rest_url += "?" + qs
        if not self.timestamp_enc_key:
            return rest_url
        return create_timestamp_antileech_url(rest_url, self.timestamp_enc_key, expires)


class QiniuStorage(StorageBackend):
    """Qiniu Kodo backend for one bucket."""

    name = "qiniu"

    def __init__(
        self,
        access_key: str,
        access_secret: str,
        bucket: Bucket,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not access_key or not access_secret:
            raise ValueError("Qiniu storage requires access_key and access_secret")
        if not bucket.name or not bucket.domain:
            raise ValueError("Qiniu storage requires bucket name and domain")
        self.access_key = access_key
        self.access_secret = access_secret
        self.bucket = bucket
        self._auth = Auth(access_key, access_secret)
        self._bucket_manager = BucketManager(self._auth)
        self._http = http_client
        self._owns_http = False

    def http_client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(follow_redirects=True)
            self._owns_http = True
        return self._http

    def close(self) -> None:
        """Close the HTTP client this backend created; an injected client is left to its owner."""
        if self._owns_http and self._http is not None:
            self._http.close()
            self._http = None
            self._owns_http = False

    def __enter__(self) -> "QiniuStorage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def auth(self) -> Auth:
        return self._auth

    @property
    def bucket_manager(self) -> BucketManager:
        return self._bucket_manager

    def simple_upload_token(self, save_key: str, expires: int = 3600) -> str:
        """Upload token whose scope is bucket:save_key."""
        return self.upload_token_with_policy(None, save_key, expires)

    def upload_token_with_policy(self, policy: dict | None, save_key: str | None = None, expires: int = 3600) -> str:
        return self._auth.upload_token(self.bucket.name, save_key, expires, policy)

    @tracked("put")
    def put(self, path: str, data: bytes) -> None:
        token = self.simple_upload_token(path, INTERNAL_TOKEN_TTL)
        try:
            ret, info = put_data(token, path, data)
        except Exception as e:
            raise StorageError(f"upload data failed, {e}") from e
        if ret is None or info.status_code != 200:
            raise StorageError(f"upload data failed, status {info.status_code}: {info.error or info.text_body}")
        _log.info("Uploaded %s to bucket %s (%d bytes)", path, self.bucket.name, len(data))

    def _fetch(self, path: str, timeout: float) -> httpx.Response:
        url = self._sign(path, INTERNAL_TOKEN_TTL)
        try:
            resp = self.http_client().get(url, timeout=timeout)
        except httpx.HTTPError as e:
            raise StorageError(f"fail to get file, {e}") from e
        if resp.status_code in (404, QINIU_NOT_FOUND):
            raise FileNotFoundError(f"Object not found: {path}")
        if resp.status_code != 200:
            _log.warning("GET %s returned %s", redact_url(url), resp.status_code)
            raise StorageError(f"fail to get file, status code: {resp.status_code}")
        return resp

    @tracked("get")
    def get(self, path: str) -> bytes:
        return self._fetch(path, get_settings().http_timeout_seconds).content

    def get_url(self, path: str) -> str:
        return self.bucket.url(path)

    def get_signed_url(self, path: str, expires: int) -> str:
        url = self._sign(path, expires)
        record_signed_url_mint(self.name)
        return url

    def _sign(self, path: str, expires: int) -> str:
        if self.bucket.private:
            return self._private_url(path, expires)
        return self.bucket.antileech_signed_url(path, expires)

    def _private_url(self, path: str, expires: int) -> str:
        try:
            parts = urlsplit(path)
        except ValueError as e:
            raise ValueError(f"path is invalid: {path}") from e
        key = unquote(parts.path).lstrip("/")
        base = f"{self.bucket.domain.rstrip('/')}/{quote(key, safe='/~|')}"
        qs = remove_query_sign_params(parts.query)
        if qs:
            base += "?" + qs
        return self._auth.private_download_url(base, expires=int(expires))

    @tracked("image_info")
    def get_image_width_height(self, path: str) -> tuple[int, int]:
        resp = self._fetch(path + "?imageInfo", get_settings().image_info_timeout_seconds)
        try:
            info = resp.json()
            return int(info["width"]), int(info["height"])
        except (ValueError, KeyError, TypeError) as e:
            raise StorageError(f"failed to unmarshal image info, {e}") from e

    @tracked("delete")
    def delete(self, path: str) -> None:
        ret, info = self._bucket_manager.delete(self.bucket.name, path)
        if info.status_code == QINIU_NOT_FOUND:
            raise FileNotFoundError(f"Object not found: {path}")
        if info.status_code != 200:
            raise StorageError(f"delete {path} failed, status {info.status_code}: {info.error or info.text_body}")

    def exists(self, path: str) -> bool:
        """HEAD the signed URL; anything but 404 counts as present."""
        url = self._sign(path, INTERNAL_TOKEN_TTL)
        try:
            resp = self.http_client().head(url, timeout=get_settings().http_timeout_seconds)
        except httpx.HTTPError as e:
            _log.warning("HEAD %s failed: %s", redact_url(url), e)
            return False
        return resp.status_code != 404

    def new_censor(self):
        from filestore.storage.censor import Censor
        return Censor(self)

    def prefop(self, persistent_id: str) -> PrefopResult:
        """Status of a persistent job."""
        try:
            body, info = PersistentFop(self._auth, self.bucket.name).get_status(persistent_id)
        except Exception as e:
            raise ZipJobError(persistent_id, f"failed to prefop, {e}") from e
        if body is None or info.status_code != 200:
            raise ZipJobError(persistent_id, f"failed to prefop, status {info.status_code}: {info.error or info.text_body}")
        return PrefopResult(
            id=body.get("id", ""),
            code=int(body.get("code", -1)),
            desc=body.get("desc", ""),
            items=body.get("items") or [],
        )

    def _pfop(self, key: str, fops: str, options: ZipOptions) -> str:
        pfop = PersistentFop(
            self._auth,
            self.bucket.name,
            pipeline=options.pipeline or None,
            notify_url=options.notify_url or None,
        )
        ret, info = pfop.execute(key, [fops], force=1 if options.force else None)
        if ret is None or "persistentId" not in ret:
            raise StorageError(f"failed to pfop, status {info.status_code}: {info.error or info.text_body}")
        return ret["persistentId"]

    def _wait(self, persistent_id: str, options: ZipOptions) -> str:
        deadline = time.monotonic() + options.wait_timeout
        while True:
            time.sleep(options.poll_interval)
            status = self.prefop(persistent_id)
            if status.id != persistent_id:
                raise ZipJobError(persistent_id, f"persistentID not match, {status.id} != {persistent_id}")
            if status.code == 3:
                raise ZipJobError(persistent_id, f"failed to zip, {status.desc}")
            if status.code == 0:
                return status.id
            if time.monotonic() > deadline:
                raise ZipJobError(persistent_id, f"zip job {persistent_id} still running after {options.wait_timeout}s")

    def zip(self, mkzip_args: MkZipArgs, options: ZipOptions | None = None) -> str:
        """
        Submit a mkzip job over mkzip_args.urls and return its persistent id.

        The job's source object is an index file (uploaded first when
        missing). With options.wait the call blocks until the job finishes
        and the index file is removed afterwards.
        """
        options = options or ZipOptions()
        fops = mkzip_args.to_fop()
        if options.save_as is not None:
            fops += "|" + options.save_as.to_fop()
        key = mkzip_args.index_file_key

        if not self.exists(key):
            self.put(key, mkzip_args.index_lines().encode())

        cleanup = True
        try:
            persistent_id = self._pfop(key, fops, options)
            _log.info("Submitted mkzip job %s (mode %d, %d urls)", persistent_id, mkzip_args.mode, len(mkzip_args.urls))
            if not options.wait:
                # the running job still reads the index file
                cleanup = False
                return persistent_id
            return self._wait(persistent_id, options)
        finally:
            if cleanup:
                self._delete_index(key)

    def _delete_index(self, key: str) -> None:
        try:
            self.delete(key)
        except (FileNotFoundError, StorageError) as e:
            _log.warning("Failed to delete mkzip index file %s: %s", key, e)
