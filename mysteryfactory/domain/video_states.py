"""Video processing statuses."""

from __future__ import annotations


VIDEO_STATUS_UPLOADING = "uploading"
VIDEO_STATUS_PROCESSING = "processing"
VIDEO_STATUS_READY = "ready"
VIDEO_STATUS_FAILED = "failed"
VIDEO_STATUS_ARCHIVED = "archived"

VIDEO_STATUSES = (
    VIDEO_STATUS_UPLOADING,
    VIDEO_STATUS_PROCESSING,
    VIDEO_STATUS_READY,
    VIDEO_STATUS_FAILED,
    VIDEO_STATUS_ARCHIVED,
)
