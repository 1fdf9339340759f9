"""
Route-manager derivation from roster data.

The roster (management users and their per-console permission links) is
owned by an external service; this module only turns it into the list of
``RouteManager`` choices an operator can assign for one console.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from fieldsales_kernel.domain.worker import UNASSIGNED, RouteManager


@dataclass(frozen=True)
class ManagementUser:
    user_id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ManagementUser:
        return cls(user_id=int(data["userId"]), name=data.get("name", ""))


@dataclass(frozen=True)
class ConsoleProfileLink:
    console_profile_id: int
    is_route_manager: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConsoleProfileLink:
        return cls(
            console_profile_id=int(data["consoleProfileId"]),
            is_route_manager=bool(data.get("isRouteManagerForThisConsole", False)),
        )


@dataclass(frozen=True)
class UserPermissions:
    user_id: int
    console_links: tuple[ConsoleProfileLink, ...] = ()

    def is_route_manager_for(self, console_id: int) -> bool:
        return any(
            link.console_profile_id == console_id and link.is_route_manager
            for link in self.console_links
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPermissions:
        return cls(
            user_id=int(data["userId"]),
            console_links=tuple(
                ConsoleProfileLink.from_dict(link)
                for link in data.get("consoleProfileLinks") or ()
            ),
        )


def assignable_route_managers(
    users: Iterable[ManagementUser],
    permissions: Iterable[UserPermissions],
    console_id: int | None,
) -> list[RouteManager]:
    """
    Route managers selectable for ``console_id``.

    The synthetic "Unassigned" entry always comes first.  Users follow in
    roster order, each with initials from the first and last name parts.
    """
    if not console_id:
        return [UNASSIGNED]
    manager_ids = {p.user_id for p in permissions if p.is_route_manager_for(console_id)}
    managers = [
        RouteManager.from_full_name(user.name)
        for user in users
        if user.user_id in manager_ids
    ]
    return [UNASSIGNED, *managers]
