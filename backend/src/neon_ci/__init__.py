"""Ephemeral Neon database branches for CI pipelines."""

from .branching import ProvisionResult, dispose_branch, provision_branch, reset_branch
from .config import Settings
from .logging_utils import configure_logging

__all__ = [
    "ProvisionResult",
    "Settings",
    "configure_logging",
    "dispose_branch",
    "provision_branch",
    "reset_branch",
]
