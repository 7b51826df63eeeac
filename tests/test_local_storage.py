"""
Unit tests for LocalStorage: root confinement, read/write, URLs, image size.
"""
from urllib.parse import parse_qs, urlsplit

import pytest

from filestore.core.security import verify_file_token
from filestore.storage.exceptions import StorageError
from filestore.storage.local import LocalStorage

from tests.conftest import TEST_SECRET, make_png


def test_put_and_get_roundtrip_creates_directories(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    storage.put("a/b/c/test.txt", "测试数据".encode())

    assert (tmp_path / "a" / "b" / "c" / "test.txt").is_file()
    assert storage.get("a/b/c/test.txt").decode() == "测试数据"


def test_absolute_path_inside_root_is_accepted(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    target = tmp_path / "absolute_test.txt"
    storage.put(str(target), b"abs")

    assert storage.get(str(target)) == b"abs"
    assert storage.get("absolute_test.txt") == b"abs"


def test_path_escaping_root_is_rejected(tmp_path):
    storage = LocalStorage(root=str(tmp_path / "root"))

    with pytest.raises(StorageError, match="escapes"):
        storage.put("../outside.txt", b"x")
    with pytest.raises(StorageError, match="escapes"):
        storage.get(str(tmp_path / "other.txt"))


def test_get_missing_raises_file_not_found(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    with pytest.raises(FileNotFoundError, match="not found"):
        storage.get("nope.txt")


def test_delete_and_exists(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    storage.put("x.bin", b"x" * 42)
    assert storage.exists("x.bin") is True

    storage.delete("x.bin")
    assert storage.exists("x.bin") is False
    with pytest.raises(FileNotFoundError):
        storage.delete("x.bin")


def test_get_url_without_base_url_is_absolute_path(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    assert storage.get_url("test_url.txt") == str((tmp_path / "test_url.txt").resolve())
    # Nothing to sign on a filesystem path
    assert storage.get_signed_url("test_url.txt", 60) == storage.get_url("test_url.txt")


def test_get_url_with_base_url(tmp_path):
    storage = LocalStorage(root=str(tmp_path), base_url="http://cdn.test/files/")
    assert storage.get_url("dir/my file.png") == "http://cdn.test/files/dir/my%20file.png"


def test_signed_url_carries_verifiable_token(tmp_path):
    storage = LocalStorage(root=str(tmp_path), base_url="http://cdn.test/files")
    url = storage.get_signed_url("dir/a.png", 300)

    parts = urlsplit(url)
    assert parts.path == "/files/dir/a.png"
    query = parse_qs(parts.query)
    assert verify_file_token("dir/a.png", query["e"][0], query["token"][0], TEST_SECRET) is True
    assert verify_file_token("dir/b.png", query["e"][0], query["token"][0], TEST_SECRET) is False


def test_image_width_height(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    storage.put("img/pic.png", make_png(512, 256))
    assert storage.get_image_width_height("img/pic.png") == (512, 256)


def test_image_width_height_rejects_non_image(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    storage.put("not_image.txt", b"plain text")
    with pytest.raises(StorageError, match="decode image"):
        storage.get_image_width_height("not_image.txt")
