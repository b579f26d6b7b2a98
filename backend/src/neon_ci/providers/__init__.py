"""Provider integrations (Neon REST API)."""

from .neon import NeonAPIClient, NeonAPICredentials, client_from_settings

__all__ = ["NeonAPIClient", "NeonAPICredentials", "client_from_settings"]
