"""
Object keys and content types for matched files.

Both helpers are pure: they only look at the path string (and, for content
types, the system MIME table).
"""

import mimetypes
import os
import posixpath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

mimetypes.init()


def normalize_prefix(target_prefix: str) -> str:
    """Strip a single leading ``/`` from the run's target prefix."""
    if target_prefix.startswith("/"):
        return target_prefix[1:]
    return target_prefix


def _to_posix(path: str) -> str:
    if os.sep != "/":
        return path.replace(os.sep, "/")
    return path


def resolve_target(local_path: str, target_prefix: str, strip_prefix: str = "") -> str:
    """
    Derive the object key for a local file.

    ``strip_prefix`` is removed from the start of ``local_path`` when present,
    the remainder is joined under ``target_prefix`` and doubled separators are
    collapsed. The key never starts with ``/``.

    Example:
        >>> resolve_target("build/img/logo.png", "releases/v1", "build/")
        'releases/v1/img/logo.png'
        >>> resolve_target("build/app.js", "", "build")
        'app.js'
    """
    path = _to_posix(local_path)
    if strip_prefix and path.startswith(_to_posix(strip_prefix)):
        path = path[len(_to_posix(strip_prefix)):]

    # Plain concatenation: an absolute remainder must not discard the prefix
    joined = "/".join(part for part in (target_prefix, path) if part)
    if not joined:
        return ""

    key = posixpath.normpath(joined)
    if key == ".":
        return ""
    # normpath keeps a leading "//"
    while key.startswith("//"):
        key = key[1:]
    if key.startswith("/"):
        key = key[1:]
    return key


def classify(path: str) -> str:
    """
    Map a file path to a MIME content type.

    The extension is everything from the last ``.`` of the final path
    segment. Unknown or missing extensions map to
    ``application/octet-stream``.

    Example:
        >>> classify("site/index.html")
        'text/html'
        >>> classify("build/LICENSE")
        'application/octet-stream'
    """
    name = posixpath.basename(_to_posix(path))
    dot = name.rfind(".")
    if dot < 0:
        return DEFAULT_CONTENT_TYPE

    ext = name[dot:]
    content_type = mimetypes.types_map.get(ext) or mimetypes.types_map.get(ext.lower())
    return content_type or DEFAULT_CONTENT_TYPE
