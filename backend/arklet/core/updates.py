"""
Application updates (one-off data migrations).

Updates are registered explicitly with a unique key and run in registration
order. Each successfully applied key is recorded in the `app_updates` table,
so an update runs at most once per database.
"""
import inspect
import logging
from collections.abc import Callable
from typing import Any

from arklet.core.errors import ConfigurationError
from arklet.models.update import AppUpdate

logger = logging.getLogger(__name__)

UpdateFn = Callable[[Any], Any]


class UpdateRegistry:
    """Ordered table of update key -> callable(arklet)."""

    def __init__(self):
        self._updates: dict[str, UpdateFn] = {}

    def register(self, key: str, fn: UpdateFn | None = None):
        """Register an update; usable as `@updates.register("0.0.1-admins")`."""
        if fn is None:
            def decorator(f: UpdateFn) -> UpdateFn:
                self.register(key, f)
                return f
            return decorator

        if key in self._updates:
            raise ConfigurationError(f"Update '{key}' is already registered")
        self._updates[key] = fn
        return fn

    def keys(self) -> list[str]:
        return list(self._updates)

    async def pending(self) -> list[str]:
        applied = set(await AppUpdate.all().values_list("key", flat=True))
        return [key for key in self._updates if key not in applied]

    async def apply(self, arklet) -> list[str]:
        """
        Run every pending update and record it.

        Stops at the first failing update and re-raises its error; updates
        applied before it stay recorded.

        Returns:
            Keys applied by this call, in order
        """
        applied: list[str] = []
        for key in await self.pending():
            logger.info("Applying update %s", key)
            result = self._updates[key](arklet)
            if inspect.isawaitable(result):
                await result
            await AppUpdate.create(key=key)
            applied.append(key)

        if applied:
            logger.info("Applied %d update(s): %s", len(applied), ", ".join(applied))
        else:
            logger.debug("No pending updates")
        return applied
