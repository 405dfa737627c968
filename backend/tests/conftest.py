"""
Pytest configuration and fixtures for picon tests.
"""

import io
import os
import shutil
import tempfile
from pathlib import Path

# Configure before picon.config is imported anywhere
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="picon-tests-"))
os.environ["TMP_DIR"] = str(_TMP_ROOT)
os.environ["PURGE_ENABLED"] = "false"
os.environ.setdefault("PURGE_CRON", "0 3 * * *")
os.environ.setdefault("PURGE_DAYS", "2")

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from picon.config import TMP_DIR


def make_image_bytes(size=(200, 200), color=(0, 0, 255), fmt="JPEG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def clean_tmp_dir():
    """Each test starts with an empty temporary directory."""
    for entry in TMP_DIR.iterdir():
        if entry.is_dir():
            shutil.rmtree(entry, ignore_errors=True)
        else:
            entry.unlink(missing_ok=True)
    yield


@pytest.fixture
def tmp_dir() -> Path:
    return TMP_DIR


@pytest.fixture
def client() -> TestClient:
    from picon.main import app
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def sample_image(tmp_path) -> Path:
    path = tmp_path / "source.png"
    Image.new("RGB", (200, 100), (0, 128, 0)).save(path)
    return path


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_TMP_ROOT, ignore_errors=True)
