from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from internship_tracker.errors import ApiError
from internship_tracker.settings import get_settings, get_uploads_dir

PHOTO_URL_PREFIX = "/uploads"
_DATA_URL_RE = re.compile(r"^data:image/(?P<subtype>[a-zA-Z0-9.+-]+);base64,(?P<data>.*)$", re.DOTALL)
_EXTENSIONS = {
    "jpeg": "jpg",
    "jpg": "jpg",
    "png": "png",
    "webp": "webp",
}


def decode_photo(raw: str) -> tuple[bytes, str]:
    value = raw.strip()
    extension = "jpg"
    match = _DATA_URL_RE.match(value)
    if match is not None:
        subtype = match.group("subtype").lower()
        if subtype not in _EXTENSIONS:
            raise ApiError(status_code=400, code="INVALID_PHOTO", message=f"Unsupported image type: {subtype}")
        extension = _EXTENSIONS[subtype]
        value = match.group("data")

    try:
        content = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ApiError(status_code=400, code="INVALID_PHOTO", message="Photo is not valid base64.") from exc

    if not content:
        raise ApiError(status_code=400, code="INVALID_PHOTO", message="Photo is empty.")
    if len(content) > get_settings().max_photo_bytes:
        raise ApiError(status_code=400, code="PHOTO_TOO_LARGE", message="Photo exceeds the size limit.")
    return content, extension


def save_check_in_photo(raw: str, *, user_id: int, now_utc: datetime) -> str:
    """Write the photo under the uploads dir and return its public path."""
    content, extension = decode_photo(raw)
    uploads_dir: Path = get_uploads_dir()
    uploads_dir.mkdir(parents=True, exist_ok=True)
    filename = f"checkin-{user_id}-{now_utc.strftime('%Y%m%d%H%M%S')}-{uuid4().hex[:8]}.{extension}"
    (uploads_dir / filename).write_bytes(content)
    return f"{PHOTO_URL_PREFIX}/{filename}"


def delete_photo(public_path: str | None) -> None:
    if not public_path or not public_path.startswith(f"{PHOTO_URL_PREFIX}/"):
        return
    target = get_uploads_dir() / public_path[len(PHOTO_URL_PREFIX) + 1 :]
    target.unlink(missing_ok=True)
