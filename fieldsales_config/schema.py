"""
Console / season configuration schema.

Human-authored source artifact for field-sales configuration.  YAML files
are parsed into these types by the loader and bridged into the kernel's
``SeasonConfig`` by ``fieldsales_config.get_season_config``.

Key distinction:
  ConsoleProfileDef / SeasonDef = source artifact (YAML, reviewable)
  SeasonConfig                  = runtime artifact consumed by services
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SeasonDef:
    """One season of a console profile."""

    season_id: str
    name: str
    season_type: str  # Individual, Team, Service
    has_payout_logic: bool = True
    enabled: bool = True
    # camelCase payout block, same shape as the stored payout settings;
    # None when the season carries no payout settings.
    payout: dict[str, Any] | None = None


@dataclass(frozen=True)
class ConsoleProfileDef:
    """A console profile and the seasons it runs."""

    console_id: int
    name: str
    seasons: tuple[SeasonDef, ...] = ()

    def season(self, season_id: str) -> SeasonDef | None:
        for season in self.seasons:
            if season.season_id == season_id:
                return season
        return None


@dataclass(frozen=True)
class FieldSalesConfigurationSet:
    """All console profiles from one configuration directory."""

    config_id: str
    version: int
    consoles: tuple[ConsoleProfileDef, ...] = field(default_factory=tuple)

    def console(self, console_id: int) -> ConsoleProfileDef | None:
        for console in self.consoles:
            if console.console_id == console_id:
                return console
        return None
