"""Error kinds surfaced by the workflow coordinator and accessors."""

from typing import Any, Dict, Optional


class AssetflowError(Exception):
    """Base class for all assetflow errors."""

    code = "ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AssetflowError):
    """A template, instance or step does not exist."""

    code = "NOT_FOUND"


class ConfigurationError(AssetflowError):
    """A workflow template is unusable, e.g. it has no steps."""

    code = "CONFIGURATION_ERROR"


class AuthorizationError(AssetflowError):
    """The approver is not entitled to act on the current step."""

    code = "NOT_AUTHORIZED"


class ConflictError(AssetflowError):
    """The instance changed underneath the caller or is already terminal."""

    code = "CONFLICT"


class PassthroughDatabaseError(AssetflowError):
    """A failure reported unmodified by the data layer."""

    code = "DATABASE_ERROR"
