"""Qiniu image content moderation (censor v3)."""
import base64
import enum
import json
import logging
from urllib.parse import urlsplit

import httpx
from qiniu import QiniuMacAuth

from filestore.core.config import get_settings
from filestore.storage.exceptions import StorageError

_log = logging.getLogger(__name__)

DEFAULT_SCENES = ("pulp", "terror", "politician")
ALLOWED_URI_PREFIXES = ("qiniu:///", "http", "data:application/octet-stream;base64,")


class Suggestion(str, enum.Enum):
    PASS = "pass"
    REVIEW = "review"
    BLOCK = "block"


def _parse_suggestion(value) -> Suggestion:
    try:
        return Suggestion(value)
    except ValueError:
        return Suggestion.BLOCK


class Censor:
    """Checks images against Qiniu's moderation API with the bound backend's credentials."""

    def __init__(self, storage, api_url: str | None = None) -> None:
        self._storage = storage
        self._auth = QiniuMacAuth(storage.access_key, storage.access_secret)
        self._api_url = api_url or get_settings().qiniu_censor_api

    def _authorization(self, body: str) -> str:
        host = urlsplit(self._api_url).netloc
        token = self._auth.token_of_request(
            method="POST",
            host=host,
            url=self._api_url,
            qheaders="",
            content_type="application/json",
            body=body,
        )
        return f"Qiniu {token}"

    def check_image_by_uri(self, uri: str, scenes: list[str] | None = None) -> tuple[Suggestion, list[str]]:
        """
        Moderate the image at uri.

        uri may be qiniu:///bucket/key, an http(s) URL or a base64 data URI
        (prefer check_image_data for raw bytes). Returns the overall
        suggestion and, when blocked, one reason per offending scene.
        A request timeout passes the image.
        """
        if not uri:
            raise ValueError("uri is required")
        if not uri.startswith(ALLOWED_URI_PREFIXES):
            raise ValueError("unsupported image uri scheme")
        scenes = list(scenes) if scenes else list(DEFAULT_SCENES)

        body = json.dumps({"data": {"uri": uri}, "params": {"scenes": scenes}})
        headers = {
            "Content-Type": "application/json",
            "Authorization": self._authorization(body),
        }
        try:
            resp = self._storage.http_client().post(
                self._api_url,
                content=body.encode(),
                headers=headers,
                timeout=get_settings().http_timeout_seconds,
            )
        except httpx.TimeoutException:
            _log.warning("Censor request timed out; passing image")
            return Suggestion.PASS, []
        except httpx.HTTPError as e:
            raise StorageError(f"censor request failed: {e}") from e

        if resp.status_code != 200:
            try:
                error = resp.json().get("error", "")
            except ValueError as e:
                raise StorageError(f"censor request failed with status {resp.status_code}") from e
            raise StorageError(f"censor request failed, status {resp.status_code}: {error}")

        try:
            ret = resp.json()
        except ValueError as e:
            raise StorageError(f"failed to parse censor response: {e}") from e
        if ret.get("code") != 200:
            raise StorageError(f"censor API error: {ret.get('message', '')}")

        result = ret.get("result") or {}
        suggestion = _parse_suggestion(result.get("suggestion"))
        if suggestion != Suggestion.BLOCK:
            return suggestion, []

        reasons = []
        for scene, verdict in (result.get("scenes") or {}).items():
            if verdict.get("suggestion") == Suggestion.PASS.value:
                continue
            best = None
            for detail in verdict.get("details") or []:
                if best is None or detail.get("score", 0) > best.get("score", 0):
                    best = detail
            if best is not None and best.get("score", 0) > 0:
                reasons.append(f"scene:{scene},desc:{best.get('desc', '')}")
        return suggestion, reasons

    def check_image_data(self, data: bytes, scenes: list[str] | None = None) -> tuple[Suggestion, list[str]]:
        encoded = base64.b64encode(data).decode()
        return self.check_image_by_uri("data:application/octet-stream;base64," + encoded, scenes)
