"""
Error taxonomy for the Arklet core.

- ConfigurationError: programmer errors detected synchronously (unknown hook,
  sealed allow-list, invalid option value).
- HandlerChainError: a hook handler failed while a request was in flight.
- InitializationError: storage or session setup failed during bootstrap.
"""


class ArkletError(Exception):
    """Base class for every error raised by the framework itself."""


class ConfigurationError(ArkletError):
    """Raised immediately when the framework is configured incorrectly."""


class HandlerChainError(ArkletError):
    """
    Wraps the error raised by a hook handler during request processing.

    Attributes:
        hook: Qualified hook name whose chain was aborted (e.g. "pre:routes")
        error: The exception raised by the failing handler
    """

    def __init__(self, hook: str, error: BaseException):
        super().__init__(f"Hook '{hook}' failed: {error!r}")
        self.hook = hook
        self.error = error


class InitializationError(ArkletError):
    """Raised when a subsystem cannot be initialized during bootstrap."""

    def __init__(self, subsystem: str, message: str):
        super().__init__(f"{subsystem}: {message}")
        self.subsystem = subsystem
