"""
AssignmentManager -- attaching showed workers to the day's sales units.

Responsibility:
    Individual mode: each showed worker reports to one route manager.
    Team mode: showed workers ride numbered carts, each cart with its own
    route manager.  Also keeps the day's route-number -> worker map and the
    contractor number on the affected bookings in step.

Architecture position:
    Kernel > Services -- imperative shell.  Mode comes from the season's
    type; the roster and bookings are reached through collaborator
    protocols.

Invariants enforced:
    - Only workers showed today can be assigned.
    - Mode-specific operations are refused in the other mode.
    - Resizing carts keeps carts 1..count that exist, creates empty ones
      for new numbers, and unassigns workers from dropped carts.

Failure modes:
    - InvalidTransitionError: worker has not showed today.
    - CartNotFoundError: unknown cart id.
    - OperatingModeError: operation belongs to the other mode.
    - WorkerNotFoundError: unknown worker id.
"""

from __future__ import annotations

from datetime import date

from fieldsales_kernel.domain.clock import Clock
from fieldsales_kernel.domain.dates import day_key
from fieldsales_kernel.domain.payout_settings import OperatingMode, SeasonConfig
from fieldsales_kernel.domain.route_managers import assignable_route_managers
from fieldsales_kernel.domain.worker import Cart, RouteManager, Worker
from fieldsales_kernel.exceptions import (
    CartNotFoundError,
    InvalidTransitionError,
    OperatingModeError,
)
from fieldsales_kernel.logging_config import get_logger
from fieldsales_kernel.services.base import BaseService
from fieldsales_kernel.services.collaborators import BookingRepository, RosterService
from fieldsales_kernel.services.repository import WorkforceRepository, WriteOutcome
from fieldsales_kernel.storage.keys import StorageKeys

logger = get_logger("services.assignment")

ACTION_ASSIGN = "assign"


class AssignmentManager(BaseService):
    """Route-manager and cart assignment for the current day."""

    def __init__(
        self,
        repository: WorkforceRepository,
        season: SeasonConfig,
        clock: Clock | None = None,
        roster: RosterService | None = None,
        bookings: BookingRepository | None = None,
    ):
        super().__init__(repository, clock)
        self.season = season
        self.roster = roster
        self.bookings = bookings

    @property
    def mode(self) -> OperatingMode:
        return self.season.operating_mode

    def _require_mode(self, mode: OperatingMode, operation: str) -> None:
        if self.mode != mode:
            raise OperatingModeError(operation, self.mode.value)

    def _showed_worker(self, worker_id: str, today: date) -> Worker:
        worker = self.repository.get_worker(worker_id)
        if not worker.showed_on(today):
            raise InvalidTransitionError(
                worker_id, ACTION_ASSIGN, worker.booking_status.value,
                f"worker has not showed on {day_key(today)}",
            )
        return worker

    def _cart(self, cart_id: int) -> Cart:
        for cart in self.repository.load_carts():
            if cart.cart_id == cart_id:
                return cart
        raise CartNotFoundError(cart_id)

    # -- Individual mode ---------------------------------------------------

    def assign_route_manager(self, worker_id: str, manager: RouteManager | None) -> WriteOutcome:
        """Assign a route manager; ``None`` or "Unassigned" clears it."""
        self._require_mode(OperatingMode.INDIVIDUAL, "assign_route_manager")
        with self.repository.critical_section():
            worker = self._showed_worker(worker_id, self.today())
            target = None if manager is None or manager.is_unassigned else manager
            outcome = self.repository.save_workers([worker.bumped(route_manager=target)])
            logger.info(
                "route_manager_assigned",
                extra={
                    "worker_id": worker_id,
                    "route_manager": target.name if target else None,
                    "persistence": outcome.status.value,
                },
            )
            return outcome

    # -- Team mode ---------------------------------------------------------

    def assign_cart(self, worker_id: str, cart_id: int | None) -> WriteOutcome:
        """Put a showed worker on a cart; ``None`` takes them off."""
        self._require_mode(OperatingMode.TEAM, "assign_cart")
        with self.repository.critical_section():
            worker = self._showed_worker(worker_id, self.today())
            if cart_id is not None:
                self._cart(cart_id)
            outcome = self.repository.save_workers([worker.bumped(cart_id=cart_id)])
            logger.info(
                "cart_assigned",
                extra={"worker_id": worker_id, "cart_id": cart_id, "persistence": outcome.status.value},
            )
            return outcome

    def assign_cart_manager(self, cart_id: int, manager: RouteManager | None) -> WriteOutcome:
        self._require_mode(OperatingMode.TEAM, "assign_cart_manager")
        with self.repository.critical_section():
            self._cart(cart_id)
            target = None if manager is None or manager.is_unassigned else manager
            carts = [
                Cart(c.cart_id, target) if c.cart_id == cart_id else c
                for c in self.repository.load_carts()
            ]
            outcome = self.repository.save_carts(carts)
            logger.info(
                "cart_manager_assigned",
                extra={
                    "cart_id": cart_id,
                    "route_manager": target.name if target else None,
                    "persistence": outcome.status.value,
                },
            )
            return outcome

    def resize_carts(self, count: int) -> WriteOutcome:
        """
        Set the number of carts to ``count``.

        Raises:
            ValueError: if ``count`` is negative.
        """
        self._require_mode(OperatingMode.TEAM, "resize_carts")
        if count < 0:
            raise ValueError("cart count cannot be negative")
        with self.repository.critical_section():
            existing = {c.cart_id: c for c in self.repository.load_carts()}
            carts = [existing.get(i, Cart(i)) for i in range(1, count + 1)]
            outcomes = [self.repository.save_carts(carts)]

            orphaned = [
                w.bumped(cart_id=None) for w in self.repository.load_workers()
                if w.cart_id is not None and w.cart_id > count
            ]
            if orphaned:
                outcomes.append(self.repository.save_workers(orphaned))
            outcome = WriteOutcome.combine(outcomes)
            logger.info(
                "carts_resized",
                extra={
                    "count": count,
                    "unassigned_worker_ids": [w.worker_id for w in orphaned],
                    "persistence": outcome.status.value,
                },
            )
            return outcome

    def cart_members(self, cart_id: int) -> list[Worker]:
        today = self.today()
        return [
            w for w in self.repository.load_workers()
            if w.cart_id == cart_id and w.showed_on(today)
        ]

    # -- either mode -------------------------------------------------------

    def effective_route_manager(self, worker: Worker) -> RouteManager | None:
        """The worker's manager, through their cart in Team mode."""
        if self.mode == OperatingMode.TEAM and worker.cart_id is not None:
            for cart in self.repository.load_carts():
                if cart.cart_id == worker.cart_id:
                    return cart.route_manager
            return None
        return worker.route_manager

    def assignable_route_managers(self, console_id: int | None = None) -> list[RouteManager]:
        """Route managers for the console, "Unassigned" first."""
        if console_id is None and isinstance(self.repository.console_id, int):
            console_id = self.repository.console_id
        if self.roster is None:
            return assignable_route_managers([], [], None)
        return assignable_route_managers(
            self.roster.management_users(), self.roster.permission_links(), console_id
        )

    def assign_route(self, route_number: str, worker_id: str | None) -> WriteOutcome:
        """
        Give ``route_number`` to a worker for the day, or release it.

        Updates the live route map and the contractor number on every
        booking of that route.
        """
        with self.repository.critical_section():
            if worker_id is not None:
                self.repository.get_worker(worker_id)
            routes = dict(self.repository.get_value(StorageKeys.ROUTE_ASSIGNMENTS, {}) or {})
            if worker_id is None:
                routes.pop(route_number, None)
            else:
                routes[route_number] = worker_id
            outcome = self.repository.set_value(StorageKeys.ROUTE_ASSIGNMENTS, routes or None)

            patched = 0
            if self.bookings is not None:
                for booking in self.bookings.find_bookings_by_route(route_number):
                    if self.bookings.update_booking_fields(
                        booking.booking_id, {"Contractor Number": worker_id}
                    ):
                        patched += 1
            logger.info(
                "route_assigned",
                extra={
                    "route_number": route_number,
                    "worker_id": worker_id,
                    "bookings_updated": patched,
                    "persistence": outcome.status.value,
                },
            )
            return outcome

    def route_assignments(self) -> dict[str, str]:
        return dict(self.repository.get_value(StorageKeys.ROUTE_ASSIGNMENTS, {}) or {})

