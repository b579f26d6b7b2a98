"""Value types produced by a single provisioning invocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


BRANCH_ID_PREFIX = "br-"


class EndpointKind(str, Enum):
    READ_WRITE = "read_write"
    READ_ONLY = "read_only"


class FeatureStatus(str, Enum):
    ENABLED = "enabled"
    ENABLED_NO_URL = "enabled_no_url"
    NOT_ENABLED = "not_enabled"
    FAILED = "failed"


@dataclass(slots=True)
class Branch:
    """A resolved branch; ``created`` is False when an existing one was reused."""

    id: str
    name: str
    parent_id: str | None = None
    expires_at: str | None = None
    created: bool = False


@dataclass(slots=True)
class Endpoint:
    id: str
    host: str
    kind: EndpointKind | None = None


@dataclass(slots=True)
class Credential:
    role: str
    password: str
    database: str


@dataclass(slots=True)
class ConnectionBundle:
    """Everything later pipeline steps need to reach the branch."""

    branch_id: str
    host: str
    pooled_host: str
    user: str
    password: str
    database: str
    database_url: str
    database_url_pooled: str

    def as_env(self) -> Dict[str, str]:
        return {
            "DATABASE_URL": self.database_url,
            "DATABASE_URL_POOLED": self.database_url_pooled,
            "PGHOST": self.host,
            "PGHOST_POOLED": self.pooled_host,
            "PGUSER": self.user,
            "PGPASSWORD": self.password,
            "PGDATABASE": self.database,
            "NEON_BRANCH_ID": self.branch_id,
        }


@dataclass(slots=True)
class FeatureLookup:
    """Outcome of a best-effort feature URL lookup."""

    feature: str
    status: FeatureStatus
    url: str | None = None
    message: str | None = None
    attempted_paths: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is FeatureStatus.ENABLED and bool(self.url)


__all__ = [
    "BRANCH_ID_PREFIX",
    "Branch",
    "ConnectionBundle",
    "Credential",
    "Endpoint",
    "EndpointKind",
    "FeatureLookup",
    "FeatureStatus",
]
