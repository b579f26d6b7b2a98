"""Minimal Neon API client for branch lifecycle management."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..config import DEFAULT_API_BASE_URL, Settings
from ..exceptions import ApiError, ConfigMissing
from ..metrics import record_call

LOGGER = logging.getLogger(__name__)

CLIENT_IDENTIFIER = "neon-ci"

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(slots=True)
class NeonAPICredentials:
    """Credential bundle used for Neon API calls."""

    api_key: str
    project_id: str
    base_url: str = DEFAULT_API_BASE_URL

    @classmethod
    def from_settings(cls, settings: Settings) -> "NeonAPICredentials":
        if not settings.api_key:
            raise ConfigMissing("Neon API key", "Set NEON_API_KEY in the CI project settings.")
        if not settings.project_id:
            raise ConfigMissing("Neon project ID", "Set NEON_PROJECT_ID in the CI project settings.")
        return cls(
            api_key=settings.api_key,
            project_id=settings.project_id,
            base_url=settings.api_base_url,
        )


class NeonAPIClient:
    """Thin wrapper around the Neon REST API.

    ``request`` never raises on HTTP status; ``request_or_fail`` raises
    :class:`ApiError` for any status >= 400. There is no retry logic.
    """

    def __init__(
        self,
        credentials: NeonAPICredentials,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._creds = credentials
        self._timeout = timeout
        self._transport = transport

    @property
    def project_id(self) -> str:
        return self._creds.project_id

    # ------------------------------------------------------------------
    def request(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> Tuple[int, str]:
        """Issue one call and return ``(status_code, body_text)``.

        Transport failures are reported as status ``0`` with the error text
        as the body.
        """

        start = time.perf_counter()
        try:
            with httpx.Client(
                base_url=self._creds.base_url,
                timeout=self._timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = client.request(method, path, json=body)
        except httpx.HTTPError as exc:
            record_call(method, path, 0, time.perf_counter() - start)
            LOGGER.debug("%s %s failed before a response: %s", method, path, exc)
            return 0, str(exc)

        record_call(method, path, response.status_code, time.perf_counter() - start)
        LOGGER.debug("%s %s -> HTTP %s", method, path, response.status_code)
        return response.status_code, response.text

    def request_or_fail(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> str:
        return self._checked(method, path, body)[1]

    def request_model(
        self,
        method: str,
        path: str,
        model: Type[ModelT],
        body: Optional[Dict[str, Any]] = None,
        *,
        strict: bool = False,
    ) -> ModelT:
        """Required call whose body is parsed into ``model``.

        By default an empty or unparseable body yields the model's defaults
        so callers see absent fields rather than a parse error. With
        ``strict`` a body that does not match ``model`` raises ``ApiError``.
        """

        status, text = self._checked(method, path, body)
        if not strict:
            return parse_model(model, text)
        try:
            return model.model_validate_json(text or "{}")
        except ValidationError:
            raise ApiError(method, path, status, f"unexpected response body: {text}") from None

    # ------------------------------------------------------------------
    def _checked(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> Tuple[int, str]:
        status, text = self.request(method, path, body)
        if status == 0 or status >= 400:
            raise ApiError(method, path, status, text)
        return status, text

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._creds.api_key}",
            "Content-Type": "application/json",
            "User-Agent": CLIENT_IDENTIFIER,
        }


def parse_model(model: Type[ModelT], text: str) -> ModelT:
    try:
        return model.model_validate_json(text or "{}")
    except ValidationError as exc:
        LOGGER.warning("Unexpected %s payload: %s", model.__name__, exc.errors()[:1])
        return model()


def parse_json(text: str) -> Dict[str, Any]:
    """Decode a JSON object, returning an empty dict for anything else."""

    try:
        decoded = json.loads(text) if text else {}
    except json.JSONDecodeError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


def client_from_settings(
    settings: Settings, *, transport: httpx.BaseTransport | None = None
) -> NeonAPIClient:
    return NeonAPIClient(
        NeonAPICredentials.from_settings(settings),
        timeout=settings.timeout,
        transport=transport,
    )
