"""Exception hierarchy for branch provisioning.

All fatal conditions inherit from NeonCIError so the CLI can report a
one-line cause and exit non-zero.
"""

from __future__ import annotations


class NeonCIError(Exception):
    """Base exception for all provisioning errors."""


class ConfigMissing(NeonCIError):
    """Raised when a required credential or identifier is absent."""

    def __init__(self, field: str, hint: str | None = None) -> None:
        self.field = field
        message = f"{field} is not set."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class ConfigInvalid(NeonCIError):
    """Raised when a configuration value cannot be interpreted."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class ApiError(NeonCIError):
    """Raised when a required API call returns an error status."""

    def __init__(self, method: str, path: str, status_code: int, body: str) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"API request {method} {path} returned HTTP {status_code}: {body.strip() or '<empty>'}"
        )


class BranchNotFound(NeonCIError):
    """Raised when a branch name or id does not resolve."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Branch '{identifier}' not found.")


class ParentNotFound(NeonCIError):
    """Raised when the requested parent branch does not resolve."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Parent branch '{identifier}' not found.")


class BranchCreateFailed(NeonCIError):
    """Raised when the create response carries no branch id."""

    def __init__(self, name: str, body: str) -> None:
        self.name = name
        self.body = body
        super().__init__(f"Failed to extract branch ID for '{name}' from response: {body.strip()}")


class NoEndpoint(NeonCIError):
    """Raised when a branch has no usable read-write endpoint."""

    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"No endpoint found for branch {branch_id}.")


class PasswordUnavailable(NeonCIError):
    """Raised when the provider does not reveal the role password.

    The usual cause is password storage being disabled for the project.
    """

    def __init__(self, role: str, branch_id: str) -> None:
        self.role = role
        self.branch_id = branch_id
        super().__init__(
            f"Could not retrieve password for role '{role}' on branch {branch_id}. "
            "Password storage is probably disabled for this project; "
            "pass the password explicitly with --password or NEON_PASSWORD."
        )


class DeleteFailed(NeonCIError):
    """Raised when a delete call fails with anything other than 2xx/404."""

    def __init__(self, branch_id: str, status_code: int, body: str) -> None:
        self.branch_id = branch_id
        self.status_code = status_code
        self.body = body
        super().__init__(f"Delete of branch {branch_id} returned HTTP {status_code}.")


class ResetFailed(NeonCIError):
    """Raised when the reset call returns a non-2xx status."""

    def __init__(self, branch_id: str, status_code: int, body: str) -> None:
        self.branch_id = branch_id
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"Reset of branch {branch_id} returned HTTP {status_code}: {body.strip() or '<empty>'}"
        )


__all__ = [
    "ApiError",
    "BranchCreateFailed",
    "BranchNotFound",
    "ConfigInvalid",
    "ConfigMissing",
    "DeleteFailed",
    "NeonCIError",
    "NoEndpoint",
    "ParentNotFound",
    "PasswordUnavailable",
    "ResetFailed",
]
