class ConsoleError(Exception):
    """Base error for store and workflow failures."""


class InvalidRequestError(ConsoleError):
    """Raised when request input is missing or malformed."""


class NotFoundError(ConsoleError):
    """Raised when the referenced entity does not exist."""


class ConflictError(ConsoleError):
    """Raised when an operation violates state transition rules."""


class AlreadyDecidedError(ConflictError):
    """Raised when a decided candidate is decided again under terminal enforcement."""


class ConfigurationError(ConsoleError):
    """Raised when required environment configuration is absent."""


class UpstreamFailureError(ConsoleError):
    """Raised when the database or an upstream service fails."""
