"""Domain-specific errors for pumpkinctl."""


class PumpkinctlError(Exception):
    """Base error for pumpkinctl."""


class ConfigLoadError(PumpkinctlError):
    """Raised when reading an installation config file fails."""


class ConfigValidationError(PumpkinctlError):
    """Raised when an installation config does not conform to schema or semantics."""


class ResolutionError(PumpkinctlError):
    """Base error for feature/controller lookups driven by caller input."""


class FeatureNotFoundError(ResolutionError):
    """Raised when a feature key is not defined in the installation."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"Feature '{feature}' not found")
        self.feature = feature


class ControllerNotFoundError(ResolutionError):
    """Raised when a feature target references an unknown controller."""

    def __init__(self, controller: str, feature: str | None = None) -> None:
        message = f"Controller '{controller}' not found"
        if feature is not None:
            message += f" for feature '{feature}'"
        super().__init__(message)
        self.controller = controller
        self.feature = feature


class InputValidationError(PumpkinctlError):
    """Raised when a command payload, colour, brightness or power flag is malformed."""


class TransportError(PumpkinctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when a controller cannot be reached."""


class TransportTimeoutError(TransportError):
    """Raised when a controller request times out."""


class TransportResponseError(TransportError):
    """Raised on non-2xx responses or undecodable bodies."""
