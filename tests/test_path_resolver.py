import pytest

from upload_server.services.errors import Forbidden
from upload_server.services.path_resolver import PathResolver


@pytest.fixture
def resolver(store_dir):
    return PathResolver(store_dir, "upload")


def test_resolve_strips_prefix(resolver, store_dir):
    path = resolver.resolve("/upload/thomas/abc/catmetal.jpg")
    assert path.relative == "thomas/abc/catmetal.jpg"
    assert path.absolute == store_dir.resolve() / "thomas" / "abc" / "catmetal.jpg"


def test_resolve_keeps_client_path_for_signing(resolver, store_dir):
    path = resolver.resolve("/upload/thomas/../other.jpg")
    assert path.relative == "thomas/../other.jpg"
    assert path.absolute == store_dir.resolve() / "other.jpg"


@pytest.mark.parametrize("url_path", ["/upload", "/upload/", ""])
def test_resolve_rejects_empty_path(resolver, url_path):
    with pytest.raises(Forbidden):
        resolver.resolve(url_path)


@pytest.mark.parametrize("url_path", [
    "/upload/..",
    "/upload/../outside.txt",
    "/upload/thomas/../../outside.txt",
    "/upload/./../../etc/passwd",
    "/upload/.",
])
def test_resolve_rejects_escapes(resolver, url_path):
    with pytest.raises(Forbidden):
        resolver.resolve(url_path)


def test_resolve_rejects_null_byte(resolver):
    with pytest.raises(Forbidden):
        resolver.resolve("/upload/file\x00.jpg")


def test_resolve_does_not_touch_filesystem(resolver, store_dir):
    resolver.resolve("/upload/a/b/c.txt")
    assert not store_dir.exists()


def test_resolve_with_nested_subdir(store_dir):
    resolver = PathResolver(store_dir, "/files/upload/")
    path = resolver.resolve("/files/upload/x.png")
    assert path.relative == "x.png"


def test_resolve_with_root_subdir(store_dir):
    resolver = PathResolver(store_dir, "")
    path = resolver.resolve("/thomas/x.png")
    assert path.relative == "thomas/x.png"
    with pytest.raises(Forbidden):
        resolver.resolve("/")


def test_resolve_confines_extra_leading_separators(resolver, store_dir):
    path = resolver.resolve("/upload//etc/x.jpg")
    assert path.relative == "/etc/x.jpg"
    assert path.absolute == store_dir.resolve() / "etc" / "x.jpg"


def test_resolve_keeps_hash_and_question_mark(resolver, store_dir):
    path = resolver.resolve("/upload/thomas/photo#1?.jpg")
    assert path.relative == "thomas/photo#1?.jpg"
    assert path.absolute == store_dir.resolve() / "thomas" / "photo#1?.jpg"
