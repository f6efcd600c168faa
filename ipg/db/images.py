"""immobiliare.it CDN image references."""

import re
from typing import Final, Literal

# Image URL pattern: https://pwm.im-cdn.it/image/{id}/{size}.jpg
ImageSize = Literal["xs", "s", "m", "m-c", "l", "xl", "xxl"]

IMAGE_SIZE_MOBILE: Final[ImageSize] = "m"
IMAGE_SIZE_DESKTOP: Final[ImageSize] = "xl"
DEFAULT_IMAGE_SIZE: Final[ImageSize] = "xl"

_IMAGE_ID_PATTERN: Final = re.compile(r"/image/(\d+)/")
_BARE_ID_PATTERN: Final = re.compile(r"^\d+$")


def build_image_url(image_id: str, size: ImageSize = DEFAULT_IMAGE_SIZE) -> str:
    """Build a CDN URL for a stored image id."""

    return f"https://pwm.im-cdn.it/image/{image_id}/{size}.jpg"


def extract_image_id(url: str) -> str | None:
    """Return the numeric image id of a CDN URL, if it is one."""

    match = _IMAGE_ID_PATTERN.search(url)
    return match.group(1) if match else None


def compact_image(reference: str) -> str:
    """Reduce an image reference to its bare id when the CDN is recognized."""

    if _BARE_ID_PATTERN.match(reference):
        return reference
    return extract_image_id(reference) or reference


def resolve_image(reference: str, size: ImageSize = DEFAULT_IMAGE_SIZE) -> str:
    """Turn a stored reference back into a displayable URL."""

    if _BARE_ID_PATTERN.match(reference):
        return build_image_url(reference, size)
    return reference
