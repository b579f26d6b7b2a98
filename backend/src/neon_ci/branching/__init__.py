"""Branch resolution, credential derivation and lifecycle operations."""

from .connection import ConnectionDeriver, build_connection_uri, encode_password, pooled_host
from .features import AUTH_FEATURE, DATA_API_FEATURE, FeatureFetcher, FeatureSpec
from .lifecycle import DisposeOutcome, dispose_branch, reset_branch
from .models import Branch, ConnectionBundle, Endpoint, EndpointKind, FeatureLookup, FeatureStatus
from .provisioning import ProvisionResult, provision_branch
from .resolver import BranchResolver, compute_expires_at, default_branch_name

__all__ = [
    "AUTH_FEATURE",
    "Branch",
    "BranchResolver",
    "ConnectionBundle",
    "ConnectionDeriver",
    "DATA_API_FEATURE",
    "DisposeOutcome",
    "Endpoint",
    "EndpointKind",
    "FeatureFetcher",
    "FeatureLookup",
    "FeatureSpec",
    "FeatureStatus",
    "ProvisionResult",
    "build_connection_uri",
    "compute_expires_at",
    "default_branch_name",
    "dispose_branch",
    "encode_password",
    "pooled_host",
    "provision_branch",
    "reset_branch",
]
