import pytest

from upload_server.services.content_types import DEFAULT_CONTENT_TYPE, content_type_for


@pytest.mark.parametrize("path,expected", [
    ("thomas/abc/catmetal.jpg", "image/jpeg"),
    ("thomas/abc/CATMETAL.JPG", "image/jpeg"),
    ("a/b.png", "image/png"),
    ("a/b.txt", "text/plain"),
    ("a/b.pdf", "application/pdf"),
])
def test_known_extensions(path, expected):
    assert content_type_for(path) == expected


@pytest.mark.parametrize("path", ["a/noextension", "a/.hidden", "a/b.unknownext", "a.dir/file"])
def test_unknown_extensions_default_to_octet_stream(path):
    assert content_type_for(path) == DEFAULT_CONTENT_TYPE == "application/octet-stream"
