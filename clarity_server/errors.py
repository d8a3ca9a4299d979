# clarity_server/errors.py


class RoutineError(Exception):
    """Base class for everything a routine request can fail with."""


class ValidationError(RoutineError):
    """Raised when a required request field is missing (HTTP 400)."""


class GenerationFailed(RoutineError):
    """Raised when the model service call fails or returns no text."""


class InvalidModelOutput(RoutineError):
    """Raised when a JSON-mode reply cannot be parsed into an object."""


class EmptyRoutine(RoutineError):
    """Raised when a plain-text reply contains no usable steps."""


class ConfigError(Exception):
    """Raised at startup when the environment is not usable."""
