"""Closed set of publication platforms."""

from __future__ import annotations

from typing import Literal, Tuple


PLATFORM_YOUTUBE = "youtube"
PLATFORM_TIKTOK = "tiktok"
PLATFORM_INSTAGRAM = "instagram"
PLATFORM_FACEBOOK = "facebook"
PLATFORM_TWITTER = "twitter"
PLATFORM_SNAPCHAT = "snapchat"

PlatformName = Literal["youtube", "tiktok", "instagram", "facebook", "twitter", "snapchat"]

SUPPORTED_PLATFORMS: Tuple[str, ...] = (
    PLATFORM_YOUTUBE,
    PLATFORM_TIKTOK,
    PLATFORM_INSTAGRAM,
    PLATFORM_FACEBOOK,
    PLATFORM_TWITTER,
    PLATFORM_SNAPCHAT,
)


class UnsupportedPlatformError(ValueError):
    """Raised when a platform identifier is outside the supported set."""

    def __init__(self, platform: str) -> None:
        super().__init__(f"unsupported platform: {platform}")
        self.platform = platform


def is_supported_platform(platform: str | None) -> bool:
    """Exact match only: no case folding or trimming."""

    return platform in SUPPORTED_PLATFORMS


def ensure_supported_platform(platform: str) -> str:
    if not is_supported_platform(platform):
        raise UnsupportedPlatformError(platform)
    return platform
