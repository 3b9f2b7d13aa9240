"""Deployment environment of the site backend."""

from __future__ import annotations

from enum import StrEnum


class AppEnv(StrEnum):
    DEV = "dev"
    PRODUCTION = "production"


# Only these spellings unlock dev behavior (plain-HTTP cookies, API docs).
DEV_ALIASES = frozenset({"dev", "development", "local", "localhost", "test"})


def normalize_app_env(value: str | None) -> AppEnv:
    """Map APP_ENV / NODE_ENV / ENV text to an AppEnv; unset and unrecognised values run as production."""
    if value and value.strip().lower() in DEV_ALIASES:
        return AppEnv.DEV
    return AppEnv.PRODUCTION
