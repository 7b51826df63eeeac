"""HMAC tokens for local file URLs (served by /files)."""
import hashlib
import hmac
import time

from filestore.core.config import get_settings


def _sign(message: str, secret_key: str | None) -> str:
    key = secret_key if secret_key is not None else get_settings().secret_key
    return hmac.new(key.encode(), message.encode(), hashlib.sha256).hexdigest()


def create_file_token(path: str, expires_s: int, secret_key: str | None = None) -> tuple[int, str]:
    """Return (deadline, token) granting read access to path until deadline (unix seconds)."""
    deadline = int(time.time()) + int(expires_s)
    return deadline, _sign(f"{path}:{deadline}", secret_key)


def verify_file_token(path: str, deadline: int | str, token: str, secret_key: str | None = None) -> bool:
    """Verify signature, path binding and deadline."""
    try:
        deadline = int(deadline)
    except (ValueError, TypeError):
        return False
    if not token:
        return False
    expected = _sign(f"{path}:{deadline}", secret_key)
    if not hmac.compare_digest(token, expected):
        return False
    if time.time() > deadline:
        return False
    return True
