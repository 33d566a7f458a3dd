"""Configuration loading and defaults."""

from duelboard.config.settings import (
    DatabaseSettings,
    DuelboardConfig,
    LeaderboardSettings,
    PairingSettings,
    create_default_config,
    find_duelboard_config,
    load_duelboard_config,
    save_duelboard_config,
)

__all__ = [
    "DatabaseSettings",
    "DuelboardConfig",
    "LeaderboardSettings",
    "PairingSettings",
    "create_default_config",
    "find_duelboard_config",
    "load_duelboard_config",
    "save_duelboard_config",
]
