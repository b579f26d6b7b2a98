"""Pydantic models for the subset of Neon API payloads the provisioner reads.

Unknown fields are ignored and optional fields accept ``null`` so that
schema drift on the provider side only matters for the fields we use.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BranchRecord(_Payload):
    id: Optional[str] = None
    name: Optional[str] = None
    parent_id: Optional[str] = None
    expires_at: Optional[str] = None


class BranchListResponse(_Payload):
    # Required: a search body without it must not read as "no matches".
    branches: List[BranchRecord]


class CreateBranchResponse(_Payload):
    branch: Optional[BranchRecord] = None


class EndpointRecord(_Payload):
    id: Optional[str] = None
    host: Optional[str] = None
    type: Optional[str] = None


class EndpointListResponse(_Payload):
    endpoints: List[EndpointRecord] = Field(default_factory=list)


class RevealPasswordResponse(_Payload):
    password: Optional[str] = None


__all__ = [
    "BranchListResponse",
    "BranchRecord",
    "CreateBranchResponse",
    "EndpointListResponse",
    "EndpointRecord",
    "RevealPasswordResponse",
]
