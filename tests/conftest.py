import hashlib
import hmac

import pytest
from fastapi.testclient import TestClient

from upload_server.config import Config
from upload_server.main import create_app

TEST_SECRET = b"mysecret"


def sign_v1(path: str, length: int, secret: bytes = TEST_SECRET) -> str:
    """Compute the token a chat server hands out for a v1 upload slot."""
    return hmac.new(secret, f"{path} {length}".encode(), hashlib.sha256).hexdigest()


def sign_v2(path: str, length: int, content_type: str, secret: bytes = TEST_SECRET) -> str:
    """Compute the token a chat server hands out for a v2/token upload slot."""
    message = f"{path}\x00{length}\x00{content_type}".encode()
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def config(store_dir):
    return Config(secret=TEST_SECRET, store_dir=store_dir, upload_subdir="upload")


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as test_client:
        yield test_client
