"""Idempotent create-or-reuse resolution of CI branches."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List
from urllib.parse import quote

from ..exceptions import BranchCreateFailed, ParentNotFound
from ..logging_utils import log_event
from ..providers.models import BranchListResponse, BranchRecord, CreateBranchResponse
from ..providers.neon import NeonAPIClient, parse_model
from .models import Branch, EndpointKind

LOGGER = logging.getLogger(__name__)

GENERATED_NAME_PREFIX = "ci"
SCHEMA_ONLY_INIT_SOURCE = "schema-only"
EXPIRES_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_branch_name(
    run_id: str | None = None,
    shard_index: str | None = None,
    *,
    clock: Clock = utcnow,
) -> str:
    """Name used when the caller does not supply one.

    The CI run identifier wins; otherwise ``ci-<UTC timestamp>``. A shard
    index is appended so parallel shards of one run get distinct branches.
    """

    if run_id:
        name = run_id
    else:
        name = f"{GENERATED_NAME_PREFIX}-{clock().astimezone(timezone.utc):%Y%m%dT%H%M%SZ}"
    if shard_index:
        name = f"{name}-{shard_index}"
    return name


def compute_expires_at(ttl_seconds: int, now: datetime | None = None) -> str | None:
    """Absolute UTC expiry ``ttl_seconds`` from ``now``, or None for no TTL."""

    if ttl_seconds <= 0:
        return None
    current = (now or utcnow()).astimezone(timezone.utc).replace(microsecond=0)
    return (current + timedelta(seconds=ttl_seconds)).strftime(EXPIRES_AT_FORMAT)


def search_branches(client: NeonAPIClient, query: str) -> List[BranchRecord]:
    """Branches whose name contains ``query``, in response order.

    An unrecognisable response is an ``ApiError``; reading it as an empty
    result would make create-or-reuse create a duplicate.
    """

    path = f"/projects/{client.project_id}/branches?search={quote(query, safe='')}"
    return client.request_model("GET", path, BranchListResponse, strict=True).branches


def find_branches(
    client: NeonAPIClient, identifier: str, *, match_id: bool = False
) -> List[BranchRecord]:
    """Exact matches for ``identifier`` among the substring search results."""

    matches = []
    for record in search_branches(client, identifier):
        if not record.id:
            continue
        if record.name == identifier or (match_id and record.id == identifier):
            matches.append(record)
    return matches


def resolve_branch_id(client: NeonAPIClient, identifier: str) -> str | None:
    """Resolve a name or id to a branch id; first match in response order."""

    matches = find_branches(client, identifier, match_id=True)
    if len(matches) > 1:
        LOGGER.warning(
            "%d branches match '%s'; using the first (%s)", len(matches), identifier, matches[0].id
        )
    return matches[0].id if matches else None


class BranchResolver:
    """Find the branch named ``name`` or create it."""

    def __init__(self, client: NeonAPIClient, *, clock: Clock = utcnow) -> None:
        self.client = client
        self.clock = clock

    # ------------------------------------------------------------------
    def resolve(
        self,
        name: str,
        *,
        parent: str | None = None,
        ttl_seconds: int = 0,
        schema_only: bool = False,
    ) -> Branch:
        LOGGER.info("Branch name: %s", name)
        existing = self.find_existing(name)
        if existing is not None:
            LOGGER.info("Branch '%s' already exists (ID: %s). Reusing.", name, existing.id)
            return existing

        parent_id = self.resolve_parent(parent) if parent else None
        expires_at = compute_expires_at(ttl_seconds, self.clock())
        if expires_at:
            LOGGER.info("Branch TTL: %ss (expires at %s)", ttl_seconds, expires_at)

        return self.create(name, parent_id=parent_id, expires_at=expires_at, schema_only=schema_only)

    def find_existing(self, name: str) -> Branch | None:
        matches = find_branches(self.client, name)
        if not matches:
            return None
        if len(matches) > 1:
            LOGGER.warning(
                "%d branches are named '%s'; reusing the first (%s)", len(matches), name, matches[0].id
            )
        record = matches[0]
        return Branch(
            id=record.id,
            name=name,
            parent_id=record.parent_id,
            expires_at=record.expires_at,
            created=False,
        )

    def resolve_parent(self, parent: str) -> str:
        parent_id = resolve_branch_id(self.client, parent)
        if parent_id is None:
            raise ParentNotFound(parent)
        LOGGER.info("Parent branch resolved: %s -> %s", parent, parent_id)
        return parent_id

    def create(
        self,
        name: str,
        *,
        parent_id: str | None = None,
        expires_at: str | None = None,
        schema_only: bool = False,
    ) -> Branch:
        payload = build_create_payload(
            name, parent_id=parent_id, expires_at=expires_at, schema_only=schema_only
        )
        LOGGER.info("Creating branch...")
        text = self.client.request_or_fail("POST", f"/projects/{self.client.project_id}/branches", payload)
        created = parse_model(CreateBranchResponse, text)
        if created.branch is None or not created.branch.id:
            raise BranchCreateFailed(name, text)

        branch = Branch(
            id=created.branch.id,
            name=name,
            parent_id=created.branch.parent_id or parent_id,
            expires_at=created.branch.expires_at or expires_at,
            created=True,
        )
        LOGGER.info("Branch created: %s", branch.id)
        log_event("branch.created", {"id": branch.id, "name": name, "expires_at": branch.expires_at})
        return branch


def build_create_payload(
    name: str,
    *,
    parent_id: str | None = None,
    expires_at: str | None = None,
    schema_only: bool = False,
) -> Dict[str, Any]:
    branch: Dict[str, Any] = {"name": name}
    if parent_id:
        branch["parent_id"] = parent_id
    if expires_at:
        branch["expires_at"] = expires_at
    if schema_only:
        branch["init_source"] = SCHEMA_ONLY_INIT_SOURCE
    return {"branch": branch, "endpoints": [{"type": EndpointKind.READ_WRITE.value}]}


__all__ = [
    "BranchResolver",
    "build_create_payload",
    "compute_expires_at",
    "default_branch_name",
    "find_branches",
    "resolve_branch_id",
    "search_branches",
]
