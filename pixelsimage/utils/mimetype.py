from __future__ import annotations

from pathlib import PurePosixPath
from urllib.parse import urlparse

JPEG = "image/jpeg"
PNG = "image/png"
VALID_MIMETYPES = (JPEG, PNG)

_EXTENSIONS = {
    ".jpg": JPEG,
    ".jpeg": JPEG,
    ".png": PNG,
}


def validate_mimetype(mimetype: str) -> str:
    if mimetype not in VALID_MIMETYPES:
        raise ValueError(
            f"Unsupported mimetype {mimetype!r}, expected one of {', '.join(VALID_MIMETYPES)}"
        )
    return mimetype


def infer_mimetype(src: str | None) -> str:
    """
    Guess the output mimetype from a path, URL or data URI.
    Anything that is not recognisably JPEG falls back to PNG.
    """
    if not src:
        return PNG

    if src[:5].lower() == "data:":
        declared = src[5:].split(",", 1)[0].split(";", 1)[0].strip().lower()
        return declared if declared in VALID_MIMETYPES else PNG

    parsed = urlparse(src)
    # Single-letter schemes are Windows drive letters, not URLs.
    path = src if len(parsed.scheme) == 1 else parsed.path
    suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower()
    return _EXTENSIONS.get(suffix, PNG)
