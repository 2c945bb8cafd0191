"""YAML option files for the estimators.

>>> from stambaugh_cov.config.loader import load_config
>>> config = load_config("robust.yaml", search_dirs=["configs"])
>>> config.mcd_alpha
0.75
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ValidationError

from .schemas import StambaughConfig

__all__ = ["ConfigError", "find_config", "load_config", "save_config"]

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
PathLike = Union[str, Path]


class ConfigError(Exception):
    """Raised when an option file is missing, unreadable or invalid."""


def find_config(file_path: PathLike, search_dirs: Iterable[PathLike] = ()) -> Path:
    """Locate ``file_path``: as given, then inside each of ``search_dirs``."""

    path = Path(file_path).expanduser()
    candidates = [path] if path.is_absolute() else [Path(d) / path for d in search_dirs] + [path]
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    raise ConfigError(f"Configuration file not found: {file_path}")


def load_config(
    file_path: PathLike,
    schema: Type[T] = StambaughConfig,
    *,
    search_dirs: Iterable[PathLike] = (),
) -> T:
    """Read a YAML mapping and validate it against ``schema``."""

    path = find_config(file_path, search_dirs)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML syntax in {path}: {exc}") from exc

    if data is None:
        raise ConfigError(f"Empty configuration file: {path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping of options in {path}")

    try:
        config = schema.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Configuration validation failed for {path}:\n{exc}") from exc
    logger.info("loaded estimator options", extra={"config_file": str(path)})
    return config


def save_config(config: BaseModel, file_path: PathLike) -> Path:
    """Write ``config`` as YAML; unset options are kept as ``null``."""

    path = Path(file_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, sort_keys=False)
    logger.info("saved estimator options", extra={"config_file": str(path)})
    return path
