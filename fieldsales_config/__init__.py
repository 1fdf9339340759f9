"""
fieldsales_config -- single public entrypoint for console/season configuration.

Responsibility:
    Provides the way to obtain a season's runtime configuration through
    ``get_season_config()``.  YAML loading is internal tooling; callers
    receive the kernel's frozen ``SeasonConfig``.

Architecture position:
    Configuration -- sits above ``fieldsales_kernel``.  The kernel never
    imports from ``fieldsales_config``; this package bridges parsed YAML
    into kernel types.

Invariants enforced:
    - A season without payout settings gets ``DEFAULT_PAYOUT_SETTINGS``
      and a logged ``SEASON_SETTINGS_MISSING`` warning.
    - Disabled seasons are still returned; callers decide what to show.

Failure modes:
    - ``SeasonConfigNotFoundError`` -- unknown console or season.
    - ``FileNotFoundError`` -- configuration directory missing.
    - ``ValueError`` / ``KeyError`` -- malformed configuration.
"""

from __future__ import annotations

from pathlib import Path

from fieldsales_config.loader import load_configuration_set
from fieldsales_config.schema import (
    ConsoleProfileDef,
    FieldSalesConfigurationSet,
    SeasonDef,
)
from fieldsales_kernel.domain.payout_settings import (
    DEFAULT_PAYOUT_SETTINGS,
    PayoutLogicSettings,
    SeasonConfig,
    SeasonType,
)
from fieldsales_kernel.exceptions import SeasonConfigNotFoundError, SeasonSettingsMissingError
from fieldsales_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets" / "default"


def bridge_season(season: SeasonDef) -> SeasonConfig:
    """Translate a parsed season into the kernel's ``SeasonConfig``."""
    if season.payout is not None:
        payout = PayoutLogicSettings.from_dict(season.payout)
    else:
        payout = DEFAULT_PAYOUT_SETTINGS
        if season.has_payout_logic:
            missing = SeasonSettingsMissingError(season.season_id)
            _logger.warning(
                "season_settings_missing",
                extra={"season_id": season.season_id, "code": missing.code},
            )
    return SeasonConfig(
        season_id=season.season_id,
        name=season.name,
        season_type=SeasonType(season.season_type),
        has_payout_logic=season.has_payout_logic,
        payout=payout,
        enabled=season.enabled,
    )


def get_configuration_set(config_dir: Path | None = None) -> FieldSalesConfigurationSet:
    return load_configuration_set(config_dir or _DEFAULT_CONFIG_DIR)


def get_console_profile(console_id: int, config_dir: Path | None = None) -> ConsoleProfileDef:
    console = get_configuration_set(config_dir).console(console_id)
    if console is None:
        raise SeasonConfigNotFoundError(console_id)
    return console


def get_season_config(
    console_id: int,
    season_id: str,
    config_dir: Path | None = None,
) -> SeasonConfig:
    """
    Return the runtime configuration of one console's season.

    Raises:
        SeasonConfigNotFoundError: if the console or season is not configured.
    """
    console = get_console_profile(console_id, config_dir)
    season = console.season(season_id)
    if season is None:
        raise SeasonConfigNotFoundError(console_id, season_id)
    config = bridge_season(season)
    _logger.info(
        "season_config_loaded",
        extra={
            "console_id": console_id,
            "season_id": season_id,
            "season_type": config.season_type.value,
            "operating_mode": config.operating_mode.value,
        },
    )
    return config


def list_seasons(console_id: int, config_dir: Path | None = None) -> list[SeasonConfig]:
    """All enabled seasons of a console, in file order."""
    console = get_console_profile(console_id, config_dir)
    return [bridge_season(s) for s in console.seasons if s.enabled]


__all__ = [
    "bridge_season",
    "get_configuration_set",
    "get_console_profile",
    "get_season_config",
    "list_seasons",
]
