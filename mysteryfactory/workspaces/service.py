"""Workspace and video lookups used by the publication pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
import json

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from mysteryfactory.domain.credentials import WorkspaceCredentials
from mysteryfactory.storage.models import Video, Workspace
from mysteryfactory.storage.security import decrypt_credential_block, encrypt_credential_block


class WorkspaceNotFoundError(LookupError):
    """Raised when a workspace does not exist for the requesting tenant."""


class VideoNotFoundError(LookupError):
    """Raised when a video does not exist for the requesting tenant."""


def get_workspace(session: Session, *, tenant_id: str, workspace_id: str) -> Workspace:
    workspace = session.scalar(
        select(Workspace).where(
            Workspace.id == workspace_id,
            Workspace.tenant_id == tenant_id,
            Workspace.deleted_at.is_(None),
        )
    )
    if workspace is None:
        raise WorkspaceNotFoundError(f"workspace_not_found: {workspace_id}")
    return workspace


def get_video(session: Session, *, tenant_id: str, video_id: str) -> Video:
    video = session.scalar(
        select(Video).where(
            Video.id == video_id,
            Video.tenant_id == tenant_id,
            Video.deleted_at.is_(None),
        )
    )
    if video is None:
        raise VideoNotFoundError(f"video_not_found: {video_id}")
    return video


def save_video(session: Session, video: Video) -> Video:
    video.updated_at = datetime.now(timezone.utc)
    session.add(video)
    session.commit()
    session.refresh(video)
    return video


def load_workspace_credentials(workspace: Workspace) -> WorkspaceCredentials:
    """Decrypt the credential block; an unset block means no platform is connected."""

    if not workspace.credentials_encrypted:
        return WorkspaceCredentials()
    raw = decrypt_credential_block(workspace.credentials_encrypted)
    try:
        return WorkspaceCredentials.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        raise ValueError("Invalid workspace credential payload") from exc


def store_workspace_credentials(workspace: Workspace, credentials: WorkspaceCredentials) -> Workspace:
    payload = credentials.model_dump(exclude_none=True)
    workspace.credentials_encrypted = encrypt_credential_block(json.dumps(payload, sort_keys=True, separators=(",", ":")))
    workspace.updated_at = datetime.now(timezone.utc)
    return workspace
