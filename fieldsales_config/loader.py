"""
Configuration Loader (``fieldsales_config.loader``).

Responsibility
--------------
Loads YAML files from a configuration set directory and parses them into
the frozen dataclasses of ``fieldsales_config.schema``.  Services never
call this directly; runtime configuration is obtained through
``fieldsales_config.get_season_config()``.

Invariants enforced
-------------------
* Required keys raise ``KeyError``; there are no silent defaults for
  identity fields (console id, season id, season type).
* Every parsed object is a frozen dataclass from ``schema.py``.

Failure modes
-------------
* Missing directory or file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown season type  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from fieldsales_config.schema import (
    ConsoleProfileDef,
    FieldSalesConfigurationSet,
    SeasonDef,
)

SEASON_TYPES = ("Individual", "Team", "Service")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_season(data: dict[str, Any]) -> SeasonDef:
    season_type = data["season_type"]
    if season_type not in SEASON_TYPES:
        raise ValueError(
            f"Unknown season type {season_type!r} for season {data['season_id']}"
        )
    payout = data.get("payout")
    return SeasonDef(
        season_id=str(data["season_id"]),
        name=data.get("name", str(data["season_id"])),
        season_type=season_type,
        has_payout_logic=bool(data.get("has_payout_logic", True)),
        enabled=bool(data.get("enabled", True)),
        payout=dict(payout) if payout else None,
    )


def parse_console(data: dict[str, Any]) -> ConsoleProfileDef:
    return ConsoleProfileDef(
        console_id=int(data["console_id"]),
        name=data.get("name", ""),
        seasons=tuple(parse_season(s) for s in data.get("seasons") or ()),
    )


def load_configuration_set(config_dir: Path) -> FieldSalesConfigurationSet:
    """
    Parse every ``*.yaml`` file in ``config_dir`` into one configuration set.

    Files are read in name order.  ``root.yaml``, when present, supplies
    ``config_id`` and ``version``; every file may contribute ``consoles``.

    Raises:
        FileNotFoundError: if ``config_dir`` does not exist.
        ValueError: if a console id appears twice.
    """
    if not config_dir.is_dir():
        raise FileNotFoundError(f"Configuration directory not found: {config_dir}")

    config_id = config_dir.name
    version = 1
    consoles: list[ConsoleProfileDef] = []
    seen: set[int] = set()

    for path in sorted(config_dir.glob("*.yaml")):
        data = load_yaml_file(path)
        if path.name == "root.yaml":
            config_id = data.get("config_id", config_id)
            version = int(data.get("version", version))
        for raw in data.get("consoles") or ():
            console = parse_console(raw)
            if console.console_id in seen:
                raise ValueError(
                    f"Console {console.console_id} defined more than once ({path.name})"
                )
            seen.add(console.console_id)
            consoles.append(console)

    return FieldSalesConfigurationSet(
        config_id=config_id,
        version=version,
        consoles=tuple(consoles),
    )
