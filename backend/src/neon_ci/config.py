"""Configuration for branch provisioning runs.

Values are read once at the process boundary and handed to each component
as an explicit ``Settings`` object.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping

from .exceptions import ConfigInvalid, ConfigMissing

DEFAULT_API_BASE_URL = "https://console.neon.tech/api/v2"
DEFAULT_ROLE = "neondb_owner"
DEFAULT_DATABASE = "neondb"

_TRUTHY = {"true", "1", "yes", "on"}

# CI run identifiers in lookup order; first non-empty wins.
_RUN_ID_VARS = ("CIRCLE_PIPELINE_NUM", "GITHUB_RUN_ID", "CI_PIPELINE_ID")
_SHARD_INDEX_VARS = ("CIRCLE_NODE_INDEX", "CI_NODE_INDEX")


def parse_flag(value: str | bool | None) -> bool:
    """Interpret common truthy spellings; anything else is false."""

    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


def parse_ttl(value: str | int | None) -> int:
    if value is None or value == "":
        return 0
    try:
        ttl = int(str(value).strip())
    except ValueError:
        raise ConfigInvalid("TTL seconds", value, "expected a whole number of seconds") from None
    if ttl < 0:
        raise ConfigInvalid("TTL seconds", value, "must be zero or positive")
    return ttl


def _first_env(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return None


@dataclass(slots=True)
class Settings:
    """Runtime configuration for a single provisioning invocation."""

    api_key: str | None = None
    project_id: str | None = None
    branch_name: str | None = None
    parent_branch: str | None = None
    role: str = DEFAULT_ROLE
    database: str = DEFAULT_DATABASE
    password: str | None = None
    ttl_seconds: int = 0
    schema_only: bool = False
    get_auth_url: bool = False
    get_data_api_url: bool = False
    api_base_url: str = DEFAULT_API_BASE_URL
    timeout: float = 30.0
    ci_run_id: str | None = None
    shard_index: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, *, branch_options: bool = True) -> "Settings":
        """Build settings from ``env`` (default ``os.environ``).

        With ``branch_options=False`` only the API connection values are
        read, so commands that never create a branch are not failed by a
        malformed create-only value such as the TTL.
        """

        env = os.environ if env is None else env
        timeout_raw = env.get("NEON_API_TIMEOUT", "30")
        try:
            timeout = float(timeout_raw)
        except ValueError:
            raise ConfigInvalid("NEON_API_TIMEOUT", timeout_raw, "expected seconds") from None

        settings = cls(
            api_key=env.get("NEON_API_KEY") or None,
            project_id=env.get("NEON_PROJECT_ID") or None,
            api_base_url=env.get("NEON_API_BASE_URL") or DEFAULT_API_BASE_URL,
            timeout=timeout,
        )
        return settings.with_branch_env(env) if branch_options else settings

    def with_branch_env(self, env: Mapping[str, str] | None = None) -> "Settings":
        """Return a copy with the create-only options read from ``env``."""

        env = os.environ if env is None else env
        return replace(
            self,
            branch_name=env.get("NEON_BRANCH_NAME") or None,
            parent_branch=env.get("NEON_PARENT_BRANCH") or None,
            role=env.get("NEON_ROLE") or DEFAULT_ROLE,
            database=env.get("NEON_DATABASE") or DEFAULT_DATABASE,
            password=env.get("NEON_PASSWORD") or None,
            ttl_seconds=parse_ttl(env.get("NEON_BRANCH_TTL_SECONDS")),
            schema_only=parse_flag(env.get("NEON_SCHEMA_ONLY")),
            get_auth_url=parse_flag(env.get("NEON_GET_AUTH_URL")),
            get_data_api_url=parse_flag(env.get("NEON_GET_DATA_API_URL")),
            ci_run_id=_first_env(env, _RUN_ID_VARS),
            shard_index=_first_env(env, _SHARD_INDEX_VARS),
        )

    def with_overrides(self, **overrides: object) -> "Settings":
        """Return a copy with every non-None override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    def validate(self) -> "Settings":
        """Fail fast on the credentials every operation needs."""

        if not self.api_key:
            raise ConfigMissing("Neon API key", "Set NEON_API_KEY in the CI project settings.")
        if not self.project_id:
            raise ConfigMissing("Neon project ID", "Set NEON_PROJECT_ID in the CI project settings.")
        if self.ttl_seconds < 0:
            raise ConfigInvalid("TTL seconds", self.ttl_seconds, "must be zero or positive")
        return self


__all__ = ["Settings", "parse_flag", "parse_ttl"]
