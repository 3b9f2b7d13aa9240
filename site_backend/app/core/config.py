"""Configuration for the site backend using pydantic-settings."""

from __future__ import annotations

import json
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .env import AppEnv, normalize_app_env


DEFAULT_TIKTOK_SCOPES = "user.info.basic,video.list"
DEFAULT_STATE_TTL_SECONDS = 10 * 60  # 10 minutes
MIN_STATE_TTL_SECONDS = 30
MAX_STATE_TTL_SECONDS = 24 * 60 * 60
DEFAULT_PROFILE_MAX_AGE_SECONDS = 7 * 24 * 60 * 60  # 1 week
MAX_VIDEO_PAGE_SIZE = 20


def _parse_list(v: Any) -> list[str]:
    if isinstance(v, str):
        v_stripped = v.strip()
        if not v_stripped:
            return []
        if v_stripped.startswith("[") and v_stripped.endswith("]"):
            try:
                return json.loads(v_stripped)
            except ValueError:
                pass
        return [x.strip() for x in v_stripped.split(",") if x.strip()]
    return v or []


class Settings(BaseSettings):
    """Process-wide settings read once at import time."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # --- Environment ---
    app_env: AppEnv = Field(
        default=AppEnv.PRODUCTION,
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV", "ENV"),
    )

    @field_validator("app_env", mode="before")
    @classmethod
    def normalize_env(cls, v: Any) -> AppEnv:
        if isinstance(v, AppEnv):
            return v
        return normalize_app_env(v)

    @field_validator("allowed_origins", "trusted_hosts", "proxy_trusted_hosts", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> list[str]:
        return _parse_list(v)

    @property
    def is_dev(self) -> bool:
        return self.app_env == AppEnv.DEV

    # --- API & Security ---
    allowed_origins: Any = Field(default_factory=list, validation_alias="SITE_ALLOWED_ORIGINS")
    trusted_hosts: Any = Field(default_factory=list, validation_alias="SITE_TRUSTED_HOSTS")
    proxy_trusted_hosts: Any = Field(
        default_factory=lambda: ["127.0.0.1", "::1", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"],
        validation_alias="SITE_PROXY_TRUSTED_HOSTS",
    )
    force_https: bool = Field(default=False, validation_alias="SITE_FORCE_HTTPS")


class TikTokSettings(BaseSettings):
    """
    TikTok client credentials and session cookie policy.

    Instantiated per request so that missing configuration fails the request
    that needs it instead of the whole process.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    client_key: str | None = Field(default=None, validation_alias="TIKTOK_CLIENT_KEY")
    client_secret: str | None = Field(default=None, validation_alias="TIKTOK_CLIENT_SECRET")
    redirect_uri: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TIKTOK_REDIRECT_URI", "NEXT_PUBLIC_TIKTOK_REDIRECT_URI"),
    )
    site_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SITE_BASE_URL", "NEXTAUTH_URL"),
    )
    session_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SESSION_SECRET", "NEXTAUTH_SECRET"),
    )

    scopes: str = Field(default=DEFAULT_TIKTOK_SCOPES, validation_alias="TIKTOK_SCOPES")
    http_timeout: float = Field(default=10.0, gt=0, validation_alias="TIKTOK_HTTP_TIMEOUT")
    video_page_size: int = Field(default=MAX_VIDEO_PAGE_SIZE, validation_alias="TIKTOK_VIDEO_PAGE_SIZE")
    state_ttl_seconds: int = Field(default=DEFAULT_STATE_TTL_SECONDS, validation_alias="TIKTOK_STATE_TTL_SECONDS")
    profile_max_age_seconds: int = Field(
        default=DEFAULT_PROFILE_MAX_AGE_SECONDS,
        validation_alias="TIKTOK_PROFILE_MAX_AGE_SECONDS",
    )
    bind_profile_to_token: bool = Field(default=False, validation_alias="TIKTOK_BIND_PROFILE_TO_TOKEN")

    @field_validator("client_key", "client_secret", "redirect_uri", "site_base_url", "session_secret", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        # An exported-but-empty variable counts as unset.
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("video_page_size", mode="after")
    @classmethod
    def clamp_page_size(cls, v: int) -> int:
        return max(1, min(v, MAX_VIDEO_PAGE_SIZE))

    @field_validator("state_ttl_seconds", mode="after")
    @classmethod
    def clamp_state_ttl(cls, v: int) -> int:
        return max(MIN_STATE_TTL_SECONDS, min(v, MAX_STATE_TTL_SECONDS))

    def missing_for_authorize(self) -> list[str]:
        """Settings the authorization redirect cannot be built without."""
        missing = []
        if not self.client_key:
            missing.append("TIKTOK_CLIENT_KEY")
        if not self.redirect_uri:
            missing.append("TIKTOK_REDIRECT_URI")
        return missing

    def missing_for_token_exchange(self) -> list[str]:
        missing = self.missing_for_authorize()
        if not self.client_secret:
            missing.insert(1, "TIKTOK_CLIENT_SECRET")
        if not self.site_base_url:
            missing.append("SITE_BASE_URL")
        return missing

    def missing_required(self) -> list[str]:
        """Every value a complete deployment is expected to provide."""
        missing = self.missing_for_token_exchange()
        if not self.session_secret:
            missing.append("SESSION_SECRET")
        return missing

    @property
    def scope_list(self) -> list[str]:
        return _parse_list(self.scopes)


def get_tiktok_settings() -> TikTokSettings:
    return TikTokSettings()


settings = Settings()
