"""
Key/value option store shared by every part of the framework.

Keys are normalised so that "frame guard", "frame_guard" and "Frame-Guard"
address the same entry. Values are stored as given; no type checking is done.
"""
import re
from pathlib import Path
from typing import Any, Mapping

_SEPARATORS = re.compile(r"[\s_\-]+")

# alternate spellings, stored under the canonical key
ALIASES = {"favico": "favicon"}


def normalize_key(key: str) -> str:
    """
    Normalise an option key.

    Lower-cases, strips, and collapses runs of whitespace, '_' and '-' into a
    single space. Colons are kept so hook-style keys ("pre:routes") survive.
    Aliases map to their canonical key.
    """
    key = _SEPARATORS.sub(" ", str(key).strip().lower())
    return ALIASES.get(key, key)


class ConfigStore:
    """
    Option storage with per-key defaults.

    `get` never fails: it returns the stored value, then the declared default,
    then the caller's fallback (None unless given).
    """

    def __init__(self, defaults: Mapping[str, Any] | None = None):
        self._defaults: dict[str, Any] = {}
        self._values: dict[str, Any] = {}
        for key, value in (defaults or {}).items():
            self._defaults[normalize_key(key)] = value

    def set(self, key: str, value: Any) -> None:
        self._values[normalize_key(key)] = value

    def get(self, key: str, default: Any = None) -> Any:
        key = normalize_key(key)
        if key in self._values:
            return self._values[key]
        return self._defaults.get(key, default)

    def options(self, values: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Bulk-set `values` (if given) and return a snapshot of every effective option."""
        for key, value in (values or {}).items():
            self.set(key, value)
        merged = dict(self._defaults)
        merged.update(self._values)
        return merged

    def is_set(self, key: str) -> bool:
        """True if the key was explicitly set (defaults do not count)."""
        return normalize_key(key) in self._values

    def get_path(self, key: str, default: str | None = None) -> Path | None:
        """
        Resolve a path-valued option relative to the "module root" option.

        Absolute paths are returned unchanged; unset options resolve `default`.
        """
        value = self.get(key, default)
        if not value:
            return None
        return self.resolve_path(value)

    def resolve_path(self, value: str | Path) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        root = self.get("module root") or Path.cwd()
        return Path(root) / path

    def __contains__(self, key: str) -> bool:
        key = normalize_key(key)
        return key in self._values or key in self._defaults
