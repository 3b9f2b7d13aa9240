"""Typed shapes for TikTok Open API replies and the JSON this site returns."""

import json
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderError(BaseModel):
    """The ``error`` object TikTok v2 attaches to every reply (``code == "ok"`` on success)."""

    model_config = ConfigDict(extra="ignore")

    code: str = "ok"
    message: str = ""
    log_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.code == "ok"


class ProviderFailure(BaseModel):
    """Error variant of a parsed provider reply, kept whole for diagnostics."""

    kind: Literal["failure"] = "failure"
    status_code: int
    code: str
    message: str = ""
    payload: Any = None


class TokenGrant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["grant"] = "grant"
    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., gt=0)
    refresh_token: Optional[str] = None
    refresh_expires_in: Optional[int] = None
    open_id: Optional[str] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None


class TokenErrorReply(BaseModel):
    """Flat error body of the v2 token endpoint."""

    model_config = ConfigDict(extra="ignore")

    error: str
    error_description: str = ""
    log_id: Optional[str] = None


class UserProfile(BaseModel):
    """Cached in the profile cookie using TikTok's own field names."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    subject_id: str = Field(..., alias="open_id", min_length=1)
    display_name: str = ""
    avatar_url: Optional[str] = None
    federated_id: Optional[str] = Field(default=None, alias="union_id")

    def to_cookie(self) -> str:
        # Set-Cookie is latin-1 on the wire; names in CJK or emoji travel as \u escapes.
        return json.dumps(
            self.model_dump(mode="json", by_alias=True, exclude_none=True),
            ensure_ascii=True,
            separators=(",", ":"),
        )


class _UserInfoData(BaseModel):
    user: UserProfile


class UserInfoReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: _UserInfoData
    error: ProviderError = ProviderError()


class MediaItem(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    title: Optional[str] = None
    description: Optional[str] = Field(default=None, alias="video_description")
    duration_seconds: Optional[float] = Field(default=None, alias="duration")
    cover_image_url: Optional[str] = None
    embed_link: Optional[str] = None
    created_at: Optional[int] = Field(default=None, alias="create_time")


class _VideoListData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    videos: List[MediaItem] = []
    has_more: bool = False
    cursor: Optional[int] = None


class VideoListReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: _VideoListData = _VideoListData()
    error: ProviderError = ProviderError()


class VideoPage(BaseModel):
    kind: Literal["page"] = "page"
    items: List[MediaItem]
    has_more: bool = False


class MediaListResponse(BaseModel):
    success: bool = True
    items: List[MediaItem]
    has_more: bool = False


class SessionStatus(BaseModel):
    signed_in: bool
    profile: Optional[dict] = None
