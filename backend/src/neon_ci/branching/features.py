"""Best-effort lookup of optional per-branch service URLs.

Neither lookup can fail a provisioning run: every outcome, including
transport errors, is reported as a :class:`FeatureLookup`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Sequence

from ..providers.neon import NeonAPIClient, parse_json
from .models import FeatureLookup, FeatureStatus

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FeatureSpec:
    """Where to look for a feature URL and which response fields may carry it.

    Paths are templates over ``project_id``, ``branch_id`` and ``database``.
    ``url_fields`` are dotted paths tried in order; first present wins.
    """

    name: str
    label: str
    env_var: str
    primary_path: str
    url_fields: Sequence[str]
    fallback_path: str | None = None

    def paths(self, **params: str) -> list[str]:
        paths = [self.primary_path.format(**params)]
        if self.fallback_path:
            paths.append(self.fallback_path.format(**params))
        return paths


AUTH_FEATURE = FeatureSpec(
    name="auth",
    label="Neon Auth",
    env_var="NEON_AUTH_URL",
    primary_path="/projects/{project_id}/branches/{branch_id}/auth",
    fallback_path="/projects/{project_id}/branches/{branch_id}/neon_auth",
    url_fields=("base_url", "url", "auth_url", "neon_auth.base_url"),
)

DATA_API_FEATURE = FeatureSpec(
    name="data_api",
    label="Data API",
    env_var="NEON_DATA_API_URL",
    primary_path="/projects/{project_id}/branches/{branch_id}/data-api/{database}",
    fallback_path="/projects/{project_id}/branches/{branch_id}/data_api/{database}",
    url_fields=("url", "data_api_url", "base_url", "data_api.url"),
)


def extract_url(payload: Mapping[str, Any], fields: Iterable[str]) -> str | None:
    """Return the first non-empty string found at any of the dotted ``fields``."""

    for dotted in fields:
        value: Any = payload
        for key in dotted.split("."):
            if not isinstance(value, Mapping) or key not in value:
                value = None
                break
            value = value[key]
        if isinstance(value, str) and value:
            return value
    return None


def _message_from(text: str) -> str | None:
    payload = parse_json(text)
    message = payload.get("message")
    return message if isinstance(message, str) and message else None


class FeatureFetcher:
    def __init__(self, client: NeonAPIClient) -> None:
        self.client = client

    def lookup(self, spec: FeatureSpec, *, branch_id: str, database: str) -> FeatureLookup:
        LOGGER.info("Retrieving %s URL...", spec.label)
        paths = spec.paths(project_id=self.client.project_id, branch_id=branch_id, database=database)
        attempted: list[str] = []

        status, text = 0, ""
        for path in paths:
            attempted.append(path)
            status, text = self.client.request("GET", path)
            if status != 404:
                break

        if status == 200:
            url = extract_url(parse_json(text), spec.url_fields)
            if url:
                return FeatureLookup(spec.name, FeatureStatus.ENABLED, url=url, attempted_paths=attempted)
            LOGGER.warning("%s is enabled but no URL is available for this branch.", spec.label)
            return FeatureLookup(spec.name, FeatureStatus.ENABLED_NO_URL, attempted_paths=attempted)

        if status == 404:
            LOGGER.warning("%s is not enabled for this branch. Skipping %s.", spec.label, spec.env_var)
            return FeatureLookup(spec.name, FeatureStatus.NOT_ENABLED, attempted_paths=attempted)

        message = _message_from(text) or (text.strip() if status == 0 else None)
        if message:
            LOGGER.warning("%s lookup returned HTTP %s: %s. Skipping %s.", spec.label, status, message, spec.env_var)
        else:
            LOGGER.warning("%s lookup returned HTTP %s. Skipping %s.", spec.label, status, spec.env_var)
        return FeatureLookup(
            spec.name, FeatureStatus.FAILED, message=message, attempted_paths=attempted
        )

    def lookup_all(
        self,
        specs: Iterable[FeatureSpec],
        *,
        branch_id: str,
        database: str,
    ) -> Dict[str, FeatureLookup]:
        return {spec.name: self.lookup(spec, branch_id=branch_id, database=database) for spec in specs}


__all__ = [
    "AUTH_FEATURE",
    "DATA_API_FEATURE",
    "FeatureFetcher",
    "FeatureSpec",
    "extract_url",
]
