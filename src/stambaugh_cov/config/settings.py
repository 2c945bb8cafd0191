"""Folders and logging flags used by the command line.

Each field can be set through a ``STAMBAUGH_``-prefixed environment variable
(``STAMBAUGH_LOGS_DIR=...``), through a ``.env`` file in the project root or
through explicit overrides keyed by field name. Overrides win over the
environment, which wins over the ``.env`` file.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

__all__ = [
    "ENV_PREFIX",
    "Settings",
    "get_settings",
    "read_env_file",
    "reset_settings_cache",
]

ENV_PREFIX = "STAMBAUGH_"


def read_env_file(path: Path) -> dict[str, str]:
    """``KEY=VALUE`` pairs of a ``.env`` file, skipping blanks and ``#`` comments."""

    if not path.is_file():
        return {}
    pairs: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and key and not key.startswith("#"):
            pairs[key.strip()] = value.strip()
    return pairs


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Cannot interpret '{value}' as boolean")


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


@dataclass(slots=True, frozen=True)
class Settings:
    """Where the CLI looks for option files and writes its log."""

    project_root: Path
    configs_dir: Path
    logs_dir: Path
    structured_logging: bool = False

    @property
    def log_file(self) -> Path:
        return self.logs_dir / "stambaugh_cov.log"

    def to_dict(self) -> dict[str, Any]:
        return {k: str(v) if isinstance(v, Path) else v for k, v in asdict(self).items()}

    @classmethod
    def from_env(
        cls,
        *,
        overrides: Mapping[str, Any] | None = None,
        env_file: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Settings":
        overrides = dict(overrides or {})
        unknown = set(overrides) - {f.name for f in fields(cls)}
        if unknown:
            raise KeyError(f"Unknown override(s): {', '.join(sorted(unknown))}")

        environ = dict(os.environ if environ is None else environ)
        from_file = read_env_file(Path(env_file).expanduser()) if env_file is not None else {}

        def lookup(name: str) -> Any:
            if name in overrides:
                return overrides[name]
            key = ENV_PREFIX + name.upper()
            return environ.get(key, from_file.get(key))

        root = lookup("project_root")
        project_root = _project_root() if root is None else Path(str(root)).expanduser().resolve()
        if env_file is None:
            from_file = read_env_file(project_root / ".env")

        def folder(name: str, default: str) -> Path:
            path = Path(str(lookup(name) or default)).expanduser()
            return path if path.is_absolute() else project_root / path

        structured = lookup("structured_logging")
        return cls(
            project_root=project_root,
            configs_dir=folder("configs_dir", "configs"),
            logs_dir=folder("logs_dir", "logs"),
            structured_logging=False if structured is None else _as_bool(structured),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings read from the process environment, built once."""

    return Settings.from_env()


def reset_settings_cache() -> None:
    get_settings.cache_clear()
