"""Content type lookup by file extension.

Uploads are frequently end-to-end encrypted (OMEMO), so their bytes carry no
usable magic numbers; the extension is the only reliable hint.
"""
import mimetypes
import posixpath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Built-in table only; system mime.types files would make results host dependent
_TYPES = mimetypes.MimeTypes(filenames=())


def content_type_for(path: str) -> str:
    _, ext = posixpath.splitext(path)
    if not ext:
        return DEFAULT_CONTENT_TYPE
    return _TYPES.types_map[True].get(ext.lower(), DEFAULT_CONTENT_TYPE)
