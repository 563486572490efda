"""Image and storage-key utilities for the pixel pipeline."""

import posixpath
from datetime import datetime, timezone
from typing import Optional, Tuple

from PIL import Image

from .codecs import ImageHeader
from .models import ImageMetadata


def extract_filename(key: str) -> str:
    """
    Derive the join name of a source key: base name without directory or extension.

    Args:
        key: Blob store object key (e.g. "photos/aaa.png")

    Returns:
        The derived name (e.g. "aaa")
    """
    base = posixpath.basename(key.rstrip("/"))
    name, _ = posixpath.splitext(base)
    return name


def converted_key(key: str, prefix: str = "converted/") -> str:
    """Storage key of the converted JPEG for a source key."""
    return f"{prefix}{extract_filename(key)}.jpg"


def resized_key(key: str, size_name: str, prefix: str = "resized/") -> str:
    """Storage key of one resized JPEG for a source key."""
    return f"{prefix}{extract_filename(key)}/{size_name}.jpg"


def calculate_target_size(size: Tuple[int, int], target_width: int) -> Tuple[int, int]:
    """
    Calculate output dimensions for a target width, preserving aspect ratio.

    Images already narrower than the target keep their original width.

    Args:
        size: Source (width, height)
        target_width: Requested output width

    Returns:
        Output (width, height)
    """
    width, height = size
    if width <= target_width:
        return width, height
    new_height = max(1, round(height * target_width / width))
    return target_width, new_height


def to_rgb(image: Image.Image) -> Image.Image:
    """Convert palette, alpha and other modes to RGB so resampling is smooth."""
    if image.mode in ("RGB", "L"):
        return image
    return image.convert("RGB")


def resize_image(image: Image.Image, target_width: int) -> Image.Image:
    """Resample an image to the target width with a Lanczos filter."""
    target = calculate_target_size(image.size, target_width)
    if target == image.size:
        return image.copy()
    return image.resize(target, Image.Resampling.LANCZOS)


def format_timestamp(value: Optional[datetime]) -> str:
    """RFC3339 timestamp in UTC; naive datetimes are assumed to be UTC."""
    if value is None:
        value = datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds").replace(
        "+00:00", "Z"
    )


def build_metadata(
    header: ImageHeader,
    key: str,
    file_size: int,
    last_modified: Optional[datetime],
) -> ImageMetadata:
    """Combine header fields with object attributes into an ImageMetadata."""
    return ImageMetadata(
        width=header.width,
        height=header.height,
        format=header.format,
        file_size=file_size,
        file_name=posixpath.basename(key),
        last_modified=format_timestamp(last_modified),
    )
