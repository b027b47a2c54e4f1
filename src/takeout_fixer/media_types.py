"""Media classification by file extension."""

from enum import Enum

IMAGE_EXTENSIONS = (
    '.jpg', '.jpeg', '.png', '.gif', '.webp', '.heic', '.heif', '.tiff', '.tif', '.bmp',
)

# Copied verbatim, never rewritten
VIDEO_EXTENSIONS = (
    '.mp4', '.mov', '.avi', '.mkv', '.webm', '.m4v', '.3gp', '.wmv',
)


class MediaKind(str, Enum):
    """What the pipeline does with a media file."""

    IMAGE = "image"
    VIDEO = "video"


def is_image_file(path: str) -> bool:
    return path.lower().endswith(IMAGE_EXTENSIONS)


def is_video_file(path: str) -> bool:
    return path.lower().endswith(VIDEO_EXTENSIONS)


def is_media_file(path: str) -> bool:
    return is_image_file(path) or is_video_file(path)


def media_kind(path: str) -> MediaKind | None:
    """Return the kind of media at ``path``, or None if it is not media."""
    if is_image_file(path):
        return MediaKind.IMAGE
    if is_video_file(path):
        return MediaKind.VIDEO
    return None
