"""Factory mapping a platform name to a fresh, unauthenticated client."""

from __future__ import annotations

from typing import Callable, Dict

from mysteryfactory.core.config import get_settings
from mysteryfactory.domain.platforms import (
    PLATFORM_FACEBOOK,
    PLATFORM_INSTAGRAM,
    PLATFORM_SNAPCHAT,
    PLATFORM_TIKTOK,
    PLATFORM_TWITTER,
    PLATFORM_YOUTUBE,
    UnsupportedPlatformError,
)
from mysteryfactory.platforms.base import PlatformClient
from mysteryfactory.platforms.facebook import FacebookClient
from mysteryfactory.platforms.instagram import InstagramClient
from mysteryfactory.platforms.snapchat import SnapchatClient
from mysteryfactory.platforms.tiktok import TikTokClient
from mysteryfactory.platforms.twitter import TwitterClient
from mysteryfactory.platforms.youtube import YouTubeClient


ClientFactory = Callable[[str], PlatformClient]


def _youtube() -> PlatformClient:
    settings = get_settings()
    return YouTubeClient(
        base_url=settings.youtube_api_base_url,
        upload_url=settings.youtube_upload_url,
        token_url=settings.youtube_token_url,
        timeout_seconds=settings.platform_api_timeout_seconds,
    )


def _tiktok() -> PlatformClient:
    settings = get_settings()
    return TikTokClient(
        base_url=settings.tiktok_api_base_url,
        timeout_seconds=settings.platform_api_timeout_seconds,
    )


def _instagram() -> PlatformClient:
    settings = get_settings()
    return InstagramClient(
        base_url=settings.graph_api_base_url,
        timeout_seconds=settings.platform_api_timeout_seconds,
    )


def _facebook() -> PlatformClient:
    settings = get_settings()
    return FacebookClient(
        base_url=settings.graph_api_base_url,
        timeout_seconds=settings.platform_api_timeout_seconds,
    )


def _twitter() -> PlatformClient:
    settings = get_settings()
    return TwitterClient(
        base_url=settings.twitter_api_base_url,
        chunk_bytes=settings.twitter_upload_chunk_bytes,
        timeout_seconds=settings.platform_api_timeout_seconds,
    )


def _snapchat() -> PlatformClient:
    settings = get_settings()
    return SnapchatClient(
        base_url=settings.snapchat_api_base_url,
        timeout_seconds=settings.platform_api_timeout_seconds,
    )


_REGISTRY: Dict[str, Callable[[], PlatformClient]] = {
    PLATFORM_YOUTUBE: _youtube,
    PLATFORM_TIKTOK: _tiktok,
    PLATFORM_INSTAGRAM: _instagram,
    PLATFORM_FACEBOOK: _facebook,
    PLATFORM_TWITTER: _twitter,
    PLATFORM_SNAPCHAT: _snapchat,
}


def new_client(platform: str) -> PlatformClient:
    """Return a new client for the exact platform name; no trimming or case folding."""

    builder = _REGISTRY.get(platform) if isinstance(platform, str) else None
    if builder is None:
        raise UnsupportedPlatformError(platform)
    return builder()
