"""Configuration for duelboard.

Settings live in ``.duelboard/duelboard.toml`` next to the data they describe.
Every key can be overridden with an environment variable of the form
``DUELBOARD_SECTION__KEY`` (e.g. ``DUELBOARD_DATABASE__PATH``).

Priority (highest to lowest):
1. Environment variables
2. Config file
3. Defaults
"""

from __future__ import annotations

import logging
import os
import tomllib
from copy import deepcopy
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".duelboard"
CONFIG_FILE_NAME = "duelboard.toml"
DEFAULT_DATABASE_PATH = ".duelboard/duelboard.duckdb"
ENV_PREFIX = "DUELBOARD_"


class DatabaseSettings(BaseModel):
    """Location of the DuckDB rating store."""

    path: str = Field(
        default=DEFAULT_DATABASE_PATH,
        description="DuckDB file relative to the project root, or ':memory:' for an ephemeral store",
    )

    @field_validator("path")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "database.path must not be empty"
            raise ValueError(msg)
        return value


class LeaderboardSettings(BaseModel):
    """Defaults for leaderboard reads."""

    default_limit: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Number of submissions returned when no limit is given",
    )
    per_category_limit: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Submissions kept per category in per-category mode",
    )


class PairingSettings(BaseModel):
    """Pair selection options."""

    seed: int | None = Field(
        default=None,
        description="Seed for the pair selector's random generator (unset = system entropy)",
    )


class DuelboardConfig(BaseSettings):
    """Root configuration, mirrors ``.duelboard/duelboard.toml``."""

    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings,
        description="Rating store location",
    )
    leaderboard: LeaderboardSettings = Field(
        default_factory=LeaderboardSettings,
        description="Leaderboard defaults",
    )
    pairing: PairingSettings = Field(
        default_factory=PairingSettings,
        description="Pair selection",
    )

    model_config = SettingsConfigDict(
        extra="forbid",
        validate_assignment=True,
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
    )

    def database_location(self, project_root: Path) -> Path | None:
        """Resolve the database path against ``project_root`` (None for in-memory)."""
        if self.database.path == ":memory:":
            return None
        path = Path(self.database.path).expanduser()
        return path if path.is_absolute() else project_root / path


def find_duelboard_config(start_dir: Path) -> Path | None:
    """Search upward for ``.duelboard/duelboard.toml``."""
    current = start_dir.expanduser().resolve()
    for candidate in (current, *current.parents):
        toml_path = candidate / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if toml_path.exists():
            return toml_path
    return None


def _collect_env_override_paths() -> set[tuple[str, ...]]:
    """Return the set of config paths defined via environment variables."""
    env_paths: set[tuple[str, ...]] = set()
    for key in os.environ:
        if not key.startswith(ENV_PREFIX):
            continue
        parts = [part.lower() for part in key[len(ENV_PREFIX) :].split("__") if part]
        if parts:
            env_paths.add(tuple(parts))
    return env_paths


def _merge_config(
    base: dict[str, Any],
    override: dict[str, Any],
    env_override_paths: set[tuple[str, ...]],
    current_path: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Merge override into base, skipping keys provided via env vars."""
    merged = deepcopy(base)

    for key, value in override.items():
        path = (*current_path, str(key).lower())
        if path in env_override_paths:
            continue

        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_config(merged[key], value, env_override_paths, path)
        else:
            merged[key] = value

    return merged


def load_duelboard_config(project_root: Path | None = None) -> DuelboardConfig:
    """Load configuration from ``.duelboard/duelboard.toml``.

    A missing file yields defaults (with env overrides applied); nothing is
    written. An invalid file is reported and replaced by defaults in memory.

    Args:
        project_root: Directory to start the upward search from. Defaults to cwd.

    Returns:
        Validated DuelboardConfig instance

    """
    if project_root is None:
        project_root = Path.cwd()

    config_path = find_duelboard_config(project_root)
    if config_path is None:
        logger.debug("No configuration found under %s, using defaults", project_root)
        return DuelboardConfig()

    logger.info("Loading config from %s", config_path)

    try:
        file_data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.error("Failed to read config from %s: %s", config_path, exc)  # noqa: TRY400
        raise

    try:
        base_dict = DuelboardConfig().model_dump(mode="json")
        merged = _merge_config(base_dict, file_data, _collect_env_override_paths())
        return DuelboardConfig.model_validate(merged)
    except ValidationError as e:
        logger.error("Configuration validation failed for %s:", config_path)  # noqa: TRY400
        for error in e.errors():
            loc = " -> ".join(str(location_part) for location_part in error["loc"])
            logger.error("  %s: %s", loc, error["msg"])  # noqa: TRY400
        logger.warning("Using default configuration due to validation error")
        return DuelboardConfig()


def save_duelboard_config(config: DuelboardConfig, project_root: Path) -> Path:
    """Write ``config`` to ``<project_root>/.duelboard/duelboard.toml``."""
    config_dir = project_root / CONFIG_DIR_NAME
    config_dir.mkdir(exist_ok=True, parents=True)
    config_path = config_dir / CONFIG_FILE_NAME

    data = config.model_dump(exclude_defaults=False, mode="json")

    # tomli_w has no representation for None
    def _clean_nones(d: dict[str, Any]) -> dict[str, Any]:
        cleaned = {}
        for k, v in d.items():
            if v is None:
                continue
            if isinstance(v, dict):
                v = _clean_nones(v)
            cleaned[k] = v
        return cleaned

    config_path.write_text(tomli_w.dumps(_clean_nones(data)), encoding="utf-8")
    logger.debug("Saved config to %s", config_path)
    return config_path


def create_default_config(project_root: Path) -> DuelboardConfig:
    """Create ``.duelboard/duelboard.toml`` with defaults and return it."""
    config = DuelboardConfig()
    save_duelboard_config(config, project_root)
    logger.info("Created default config at %s/%s/%s", project_root, CONFIG_DIR_NAME, CONFIG_FILE_NAME)
    return config
