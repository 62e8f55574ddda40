import mimetypes
import re
from typing import Optional
from urllib.parse import urlparse


IMAGE_LABEL = "📷 Image"
VIDEO_LABEL = "🎥 Video"
FILE_LABEL = "📎 File"


def guess_mime_type(url: str) -> Optional[str]:
    path = urlparse(url).path.lower()
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type:
        return mime_type
    # storage URLs keep the resource type as a path segment, e.g. /video/upload/...
    if "/image/" in path:
        return "image/*"
    if "/video/" in path:
        return "video/*"
    return None


def attachment_label(mime_type: Optional[str]) -> str:
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return IMAGE_LABEL
    if mime_type.startswith("video/"):
        return VIDEO_LABEL
    return FILE_LABEL


def sanitize_folder_name(name: Optional[str]) -> str:
    if not name:
        return ""
    name = re.sub(r"[^a-zA-Z0-9\s]", "", name.strip())
    name = re.sub(r"\s+", "_", name)
    return re.sub(r"_+", "_", name).strip("_")
