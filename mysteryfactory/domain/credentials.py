"""Per-platform credential slots stored on a workspace."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class YouTubeCredentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    access_token: str = ""
    refresh_token: str = ""
    client_id: str = ""
    client_secret: str = ""
    token_uri: str = ""


class TikTokCredentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    access_token: str = ""
    open_id: str = ""


class InstagramCredentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: str = ""
    access_token: str = ""


class FacebookCredentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app_id: str = ""
    app_secret: str = ""
    page_id: str = ""
    page_access_token: str = ""


class TwitterCredentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    access_token: str = ""


class SnapchatCredentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    access_token: str = ""
    profile_id: str = ""


class WorkspaceCredentials(BaseModel):
    """One optional slot per platform; a workspace may be connected to only some of them."""

    model_config = ConfigDict(extra="forbid")

    youtube: Optional[YouTubeCredentials] = Field(default=None)
    tiktok: Optional[TikTokCredentials] = Field(default=None)
    instagram: Optional[InstagramCredentials] = Field(default=None)
    facebook: Optional[FacebookCredentials] = Field(default=None)
    twitter: Optional[TwitterCredentials] = Field(default=None)
    snapchat: Optional[SnapchatCredentials] = Field(default=None)

    def connected_platforms(self) -> list[str]:
        return [name for name in type(self).model_fields if getattr(self, name) is not None]
