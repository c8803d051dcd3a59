"""
Arklet: application bootstrap for a content-management framework.

Exposes the Arklet instance factory, the hook registry and the error types.
"""
__version__ = "0.4.0"

from arklet.core.arklet import Arklet, create_arklet  # noqa: E402
from arklet.core.errors import (  # noqa: E402
    ArkletError,
    ConfigurationError,
    HandlerChainError,
    InitializationError,
)
from arklet.core.hooks import HookRegistry  # noqa: E402
from arklet.core.options import ConfigStore  # noqa: E402
from arklet.pipeline.stage import MiddlewareSlot  # noqa: E402

__all__ = [
    "Arklet",
    "ArkletError",
    "ConfigStore",
    "ConfigurationError",
    "HandlerChainError",
    "HookRegistry",
    "InitializationError",
    "MiddlewareSlot",
    "create_arklet",
    "__version__",
]
