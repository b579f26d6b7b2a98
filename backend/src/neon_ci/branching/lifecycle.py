"""Teardown and reset of an already-known branch."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict

from ..exceptions import BranchNotFound, DeleteFailed, ParentNotFound, ResetFailed
from ..logging_utils import log_event
from ..providers.neon import NeonAPIClient
from .models import BRANCH_ID_PREFIX
from .resolver import resolve_branch_id

LOGGER = logging.getLogger(__name__)


class DisposeOutcome(str, Enum):
    DELETED = "deleted"
    ALREADY_GONE = "already_gone"


def looks_like_branch_id(identifier: str) -> bool:
    return identifier.startswith(BRANCH_ID_PREFIX)


def dispose_branch(client: NeonAPIClient, branch_id: str) -> DisposeOutcome:
    """Delete ``branch_id``; a branch that is already gone counts as success."""

    LOGGER.info("Deleting branch: %s ...", branch_id)
    status, text = client.request("DELETE", f"/projects/{client.project_id}/branches/{branch_id}")

    if 200 <= status < 300:
        LOGGER.info("Branch %s deleted successfully.", branch_id)
        log_event("branch.deleted", {"id": branch_id})
        return DisposeOutcome.DELETED
    if status == 404:
        LOGGER.info("Branch %s not found (already deleted or expired via TTL). Skipping.", branch_id)
        return DisposeOutcome.ALREADY_GONE
    raise DeleteFailed(branch_id, status, text)


def reset_branch(client: NeonAPIClient, branch: str, parent: str | None = None) -> str:
    """Reset ``branch`` (id or name) to the head of its parent.

    With ``parent`` the branch is re-pointed at that branch instead. Returns
    the id of the branch that was reset.
    """

    branch_id = branch
    if not looks_like_branch_id(branch):
        LOGGER.info("Resolving branch name '%s' to ID...", branch)
        resolved = resolve_branch_id(client, branch)
        if resolved is None:
            raise BranchNotFound(branch)
        LOGGER.info("Resolved: %s -> %s", branch, resolved)
        branch_id = resolved

    payload: Dict[str, Any] = {}
    if parent:
        parent_id = resolve_branch_id(client, parent)
        if parent_id is None:
            raise ParentNotFound(parent)
        LOGGER.info("Parent branch resolved: %s -> %s", parent, parent_id)
        payload["parent_id"] = parent_id

    LOGGER.info("Resetting branch %s...", branch_id)
    status, text = client.request(
        "POST", f"/projects/{client.project_id}/branches/{branch_id}/reset", payload
    )
    if not 200 <= status < 300:
        raise ResetFailed(branch_id, status, text)

    LOGGER.info("Branch %s reset successfully.", branch_id)
    log_event("branch.reset", {"id": branch_id, "parent_id": payload.get("parent_id")})
    return branch_id


__all__ = ["DisposeOutcome", "dispose_branch", "looks_like_branch_id", "reset_branch"]
