"""Configuration loading: overrides → env vars → ``.env`` file → defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

__all__ = ["Config"]

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_S = 5 * 60
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_OUTPUT_LIMIT = 20_000

ConfigValue = str | bool | int | Path | None

_TRUTHY = ("1", "true", "yes")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in _TRUTHY


def _env_int(name: str) -> int | None:
    """Read a positive integer env var, warning and ignoring bad values."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: expected an integer", name, raw)
        return None


def _load_env_files() -> None:
    """Load a dotenv file from cwd without overriding real env vars."""
    load_dotenv(Path.cwd() / ".env", override=False)


@dataclass(frozen=True)
class Config:
    """Immutable server configuration."""

    root: Path = field(default_factory=Path.cwd)
    session_timeout_s: int = DEFAULT_SESSION_TIMEOUT_S
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    output_limit: int = DEFAULT_OUTPUT_LIMIT
    verbose: bool = False

    def __post_init__(self) -> None:
        """Resolve ``root`` and validate the numeric limits.

        ``root`` must be an existing directory; it becomes the boundary every
        path argument is confined to. Limits must be positive integers.
        """
        root = Path(self.root).expanduser().resolve()
        if not root.is_dir():
            msg = f"Workspace root is not a directory: {self.root}"
            raise ValueError(msg)
        object.__setattr__(self, "root", root)

        for name in ("session_timeout_s", "max_file_size", "output_limit"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                msg = f"{name} must be a positive integer, got {value!r}"
                raise ValueError(msg)

    @classmethod
    def from_env(cls, overrides: dict[str, ConfigValue] | None = None) -> Config:
        """Build config from environment variables, then apply overrides.

        Priority: overrides (CLI flags) > env vars > defaults.
        """
        _load_env_files()

        env_values: dict[str, ConfigValue] = {
            "root": os.environ.get("STEADY_HANDS_ROOT"),
            "session_timeout_s": _env_int("STEADY_HANDS_SESSION_TIMEOUT"),
            "max_file_size": _env_int("STEADY_HANDS_MAX_FILE_SIZE"),
            "output_limit": _env_int("STEADY_HANDS_OUTPUT_LIMIT"),
            "verbose": _env_flag("STEADY_HANDS_VERBOSE"),
        }

        merged = {k: v for k, v in env_values.items() if v}
        if overrides:
            merged.update({k: v for k, v in overrides.items() if v is not None})

        root = merged.get("root")
        return cls(
            root=Path(str(root)) if root else Path.cwd(),
            session_timeout_s=int(
                merged.get("session_timeout_s", DEFAULT_SESSION_TIMEOUT_S)
            ),
            max_file_size=int(merged.get("max_file_size", DEFAULT_MAX_FILE_SIZE)),
            output_limit=int(merged.get("output_limit", DEFAULT_OUTPUT_LIMIT)),
            verbose=bool(merged.get("verbose", False)),
        )
