"""Provisioning flow: resolve the branch, derive credentials, look up features."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ..config import Settings
from ..providers.neon import NeonAPIClient
from .connection import ConnectionDeriver
from .features import AUTH_FEATURE, DATA_API_FEATURE, FeatureFetcher, FeatureSpec
from .models import Branch, ConnectionBundle, FeatureLookup
from .resolver import BranchResolver, Clock, default_branch_name, utcnow

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ProvisionResult:
    """Summary of a provisioning run."""

    branch: Branch
    connection: ConnectionBundle
    features: Dict[str, FeatureLookup] = field(default_factory=dict)

    def exports(self) -> Dict[str, str]:
        """Environment snapshot handed to later pipeline steps."""

        env = self.connection.as_env()
        for spec in (AUTH_FEATURE, DATA_API_FEATURE):
            lookup = self.features.get(spec.name)
            if lookup is not None and lookup.ok:
                env[spec.env_var] = lookup.url
        return env


def requested_features(settings: Settings) -> List[FeatureSpec]:
    specs = []
    if settings.get_auth_url:
        specs.append(AUTH_FEATURE)
    if settings.get_data_api_url:
        specs.append(DATA_API_FEATURE)
    return specs


def provision_branch(
    client: NeonAPIClient,
    settings: Settings,
    *,
    clock: Clock = utcnow,
) -> ProvisionResult:
    """Create or reuse the branch described by ``settings`` and return its credentials.

    Failures after creation leave the branch in place; the TTL bounds the leak.
    """

    name = settings.branch_name or default_branch_name(
        settings.ci_run_id, settings.shard_index, clock=clock
    )
    branch = BranchResolver(client, clock=clock).resolve(
        name,
        parent=settings.parent_branch,
        ttl_seconds=settings.ttl_seconds,
        schema_only=settings.schema_only,
    )
    connection = ConnectionDeriver(client).derive(
        branch,
        role=settings.role,
        database=settings.database,
        password=settings.password,
    )

    features = FeatureFetcher(client).lookup_all(
        requested_features(settings), branch_id=branch.id, database=settings.database
    )
    return ProvisionResult(branch=branch, connection=connection, features=features)


__all__ = ["ProvisionResult", "provision_branch", "requested_features"]
