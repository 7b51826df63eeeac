"""Credentials and URL signatures never reach the logs."""
from filestore.core.logging_redaction import redact_for_log, redact_url


def test_redacts_sensitive_keys():
    out = redact_for_log({
        "access_key": "AK",
        "access_secret": "SK",
        "nested": {"password": "pw", "bucket": "bkt"},
        "items": [{"token": "t"}],
    })
    assert out["access_key"] == "[REDACTED]"
    assert out["access_secret"] == "[REDACTED]"
    assert out["nested"] == {"password": "[REDACTED]", "bucket": "bkt"}
    assert out["items"] == [{"token": "[REDACTED]"}]


def test_redacts_authorization_values():
    assert redact_for_log("Qiniu ak:abcdef") == "[REDACTED]"
    assert redact_for_log("Bearer xyz") == "[REDACTED]"
    assert redact_for_log("plain") == "plain"


def test_redact_url_masks_signatures_and_password():
    url = "https://user:pw@cdn.example.com/a.png?imageInfo=&e=1700000000&token=ak:sig"
    out = redact_url(url)
    assert "pw" not in out
    assert "sig" not in out
    assert "user:[REDACTED]@cdn.example.com" in out
    assert "e=1700000000" in out


def test_redact_url_leaves_unsigned_urls_alone():
    url = "https://cdn.example.com/a.png?x=1"
    assert redact_url(url) == url
    assert redact_for_log(url) == url
