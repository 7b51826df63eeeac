"""CLI against a local driver file."""
import json
import re

import pytest

from filestore.cli import main

from tests.conftest import make_png


@pytest.fixture
def driver_file(tmp_path):
    cfg = tmp_path / "driver.yaml"
    cfg.write_text(f"name: local\nconfig:\n  root: {tmp_path / 'root'}\n  base_url: http://files.test/files\n")
    return str(cfg)


def test_key_needs_no_storage(capsys):
    assert main(["key", "docs", "pdf"]) == 0
    assert re.fullmatch(r"docs/\d{4}/\d{2}/\d{2}/[0-9a-f]{32}\.pdf\n", capsys.readouterr().out)


def test_put_get_exists_delete(driver_file, tmp_path, capsys):
    src = tmp_path / "src.txt"
    src.write_bytes(b"hello")
    out_file = tmp_path / "out.txt"

    assert main(["--config", driver_file, "put", "dir/a.txt", str(src)]) == 0
    assert capsys.readouterr().out.strip() == "http://files.test/files/dir/a.txt"

    assert main(["--config", driver_file, "get", "dir/a.txt", "-o", str(out_file)]) == 0
    assert out_file.read_bytes() == b"hello"

    assert main(["--config", driver_file, "exists", "dir/a.txt"]) == 0
    assert main(["--config", driver_file, "delete", "dir/a.txt"]) == 0
    capsys.readouterr()
    assert main(["--config", driver_file, "exists", "dir/a.txt"]) == 1
    assert capsys.readouterr().out.strip() == "no"


def test_sign_and_size(driver_file, tmp_path, capsys):
    (tmp_path / "root").mkdir()
    (tmp_path / "root" / "pic.png").write_bytes(make_png(20, 10))

    assert main(["--config", driver_file, "sign", "pic.png", "--expires", "60"]) == 0
    assert "token=" in capsys.readouterr().out

    assert main(["--config", driver_file, "size", "pic.png"]) == 0
    assert json.loads(capsys.readouterr().out) == {"width": 20, "height": 10}


def test_errors_exit_nonzero(driver_file, capsys):
    assert main(["--config", driver_file, "get", "missing.txt"]) == 1
    assert "Error:" in capsys.readouterr().err

    assert main(["--config", driver_file, "zip", "http://x/y", "--save-key", "out.zip"]) == 1
    assert "not qiniu" in capsys.readouterr().err
