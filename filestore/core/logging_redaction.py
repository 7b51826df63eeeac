"""Redact sensitive data from logs. Never log credentials, upload tokens or URL signatures."""
import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Keys (case-insensitive) that must be redacted in dicts
REDACT_KEYS = frozenset({
    "password", "token", "secret", "authorization", "access_key",
    "access_secret", "secret_key", "timestamp_enc_key", "api_key", "sign",
})

# Query params that carry signatures
REDACT_QUERY = frozenset({"token", "sign"})


def _redact_key(key: str) -> bool:
    k = key.lower()
    return any(r in k for r in REDACT_KEYS)


def redact_for_log(obj: Any) -> Any:
    """Return a copy of obj safe for logging: sensitive keys replaced with '[REDACTED]'."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _redact_key(str(k)) else redact_for_log(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if isinstance(obj, str):
        if _looks_like_secret(obj):
            return "[REDACTED]"
        if obj.startswith(("http://", "https://")):
            return redact_url(obj)
    return obj


def redact_url(url: str) -> str:
    """Mask the userinfo password and signature query values of a URL."""
    parts = urlsplit(url)
    netloc = parts.netloc
    if "@" in netloc:
        userinfo, host = netloc.rsplit("@", 1)
        user = userinfo.split(":", 1)[0]
        netloc = f"{user}:[REDACTED]@{host}" if ":" in userinfo else f"{user}@{host}"
    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        if any(k in REDACT_QUERY for k, _ in pairs):
            query = urlencode([(k, "[REDACTED]" if k in REDACT_QUERY else v) for k, v in pairs], safe="|/[]")
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def _looks_like_secret(s: str) -> bool:
    """Heuristic: bearer or Qiniu authorization header values."""
    lowered = s.lower()
    if lowered.startswith("bearer ") or lowered.startswith("qiniu "):
        return True
    if len(s) > 64 and re.match(r"^[A-Za-z0-9_-]+:[A-Za-z0-9_=-]+:[A-Za-z0-9_=-]+$", s):
        return True  # upload-token-like
    return False
