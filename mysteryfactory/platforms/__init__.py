"""Platform clients and the shared client contract."""

from mysteryfactory.platforms.base import (
    PlatformClient,
    PlatformCredentialsError,
    PlatformError,
    PlatformOperationNotSupported,
    PlatformStats,
)
from mysteryfactory.platforms.factory import new_client

__all__ = [
    "PlatformClient",
    "PlatformCredentialsError",
    "PlatformError",
    "PlatformOperationNotSupported",
    "PlatformStats",
    "new_client",
]
