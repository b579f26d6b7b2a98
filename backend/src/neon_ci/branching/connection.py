"""Endpoint and credential derivation for a resolved branch."""

from __future__ import annotations

import logging
from typing import Dict, Tuple
from urllib.parse import quote, unquote

from ..exceptions import NoEndpoint, PasswordUnavailable
from ..logging_utils import register_secret
from ..providers.models import EndpointListResponse, EndpointRecord, RevealPasswordResponse
from ..providers.neon import NeonAPIClient
from .models import Branch, ConnectionBundle, Credential, Endpoint, EndpointKind

LOGGER = logging.getLogger(__name__)

CONNECTION_SCHEME = "postgresql"
POOLER_SUFFIX = "-pooler"
SSL_MODE = "require"


def pooled_host(host: str, endpoint_id: str) -> str:
    """Host routed through the connection pooler.

    Neon hostnames embed the endpoint id verbatim
    (``ep-abc123.region.aws.neon.tech``); the pooler host inserts
    ``-pooler`` right after it. Every occurrence of the id is rewritten.
    """

    if not endpoint_id:
        return host
    return host.replace(endpoint_id, f"{endpoint_id}{POOLER_SUFFIX}")


def encode_password(password: str) -> str:
    """Percent-encode for the userinfo segment; unreserved chars stay as-is."""

    return quote(password, safe="")


def decode_password(encoded: str) -> str:
    return unquote(encoded)


def build_connection_uri(role: str, password: str, host: str, database: str) -> str:
    return (
        f"{CONNECTION_SCHEME}://{role}:{encode_password(password)}@{host}/{database}"
        f"?sslmode={SSL_MODE}"
    )


def endpoint_from_record(record: EndpointRecord) -> Endpoint:
    """Map a provider endpoint; unrecognised types are left undeclared."""

    kinds = {kind.value: kind for kind in EndpointKind}
    return Endpoint(id=record.id or "", host=record.host or "", kind=kinds.get(record.type or ""))


def select_endpoint(endpoints: list[Endpoint]) -> Endpoint | None:
    """First read-write endpoint in response order.

    When no entry declares a kind the first entry is used.
    """

    for endpoint in endpoints:
        if endpoint.kind is EndpointKind.READ_WRITE:
            return endpoint
    if endpoints and all(endpoint.kind is None for endpoint in endpoints):
        return endpoints[0]
    return None


class ConnectionDeriver:
    """Turn a branch into a connection bundle.

    Revealed passwords are cached per (branch, role) so they are fetched at
    most once per deriver.
    """

    def __init__(self, client: NeonAPIClient) -> None:
        self.client = client
        self._passwords: Dict[Tuple[str, str], str] = {}

    # ------------------------------------------------------------------
    def derive(
        self,
        branch: Branch,
        *,
        role: str,
        database: str,
        password: str | None = None,
    ) -> ConnectionBundle:
        endpoint = self.fetch_endpoint(branch.id)
        pooled = pooled_host(endpoint.host, endpoint.id)
        credential = Credential(
            role=role,
            password=password if password else self.reveal_password(branch.id, role),
            database=database,
        )
        register_secret(credential.password)
        register_secret(encode_password(credential.password))

        return ConnectionBundle(
            branch_id=branch.id,
            host=endpoint.host,
            pooled_host=pooled,
            user=credential.role,
            password=credential.password,
            database=credential.database,
            database_url=build_connection_uri(role, credential.password, endpoint.host, database),
            database_url_pooled=build_connection_uri(role, credential.password, pooled, database),
        )

    def fetch_endpoint(self, branch_id: str) -> Endpoint:
        path = f"/projects/{self.client.project_id}/branches/{branch_id}/endpoints"
        response = self.client.request_model("GET", path, EndpointListResponse)
        endpoint = select_endpoint([endpoint_from_record(record) for record in response.endpoints])
        if endpoint is None or not endpoint.host:
            raise NoEndpoint(branch_id)
        return endpoint

    def reveal_password(self, branch_id: str, role: str) -> str:
        key = (branch_id, role)
        cached = self._passwords.get(key)
        if cached is not None:
            return cached

        LOGGER.info("Retrieving password for role '%s'...", role)
        path = (
            f"/projects/{self.client.project_id}/branches/{branch_id}"
            f"/roles/{quote(role, safe='')}/reveal_password"
        )
        response = self.client.request_model("GET", path, RevealPasswordResponse)
        if not response.password:
            raise PasswordUnavailable(role, branch_id)

        self._passwords[key] = response.password
        return response.password


__all__ = [
    "ConnectionDeriver",
    "build_connection_uri",
    "decode_password",
    "encode_password",
    "endpoint_from_record",
    "pooled_host",
    "select_endpoint",
]
