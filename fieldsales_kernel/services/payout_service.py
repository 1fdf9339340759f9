"""
PayoutService -- completing the day's payouts.

Responsibility:
    Pulls completed bookings from the booking repository, runs the pure
    payout calculator and the season's commission strategy, and records the
    resulting payout snapshot and history entry on each worker.

Architecture position:
    Kernel > Services -- imperative shell.  Every side effect of the payout
    flow happens here; ``fieldsales_kernel.domain.payout`` and the
    commission strategies stay pure.

Invariants enforced:
    - Payout requires today's attendance to be finalized.
    - Individual mode pays one worker; Team mode pays every showed member
      of a cart, splitting the cart's gross, equivalents and commission
      evenly.  Deductions and bonuses stay per member.
    - Exactly one history record per worker per day: completing again
      (modify payout) overwrites that day's record.
    - Stored amounts are rounded half-up to cents; equivalents to two
      places.

Failure modes:
    - AttendanceNotFinalizedError: attendance for today is not locked.
    - OperatingModeError: worker payout in Team mode or cart payout in
      Individual mode.
    - InvalidTransitionError: worker did not show today.
    - CartNotFoundError / WorkerNotFoundError: unknown ids.
    - CommissionStrategyNotFoundError: season names an unknown strategy.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from fieldsales_kernel.domain.booking import BookingRecord
from fieldsales_kernel.domain.clock import Clock
from fieldsales_kernel.domain.commission import CommissionInput, CommissionStrategyRegistry
from fieldsales_kernel.domain.dates import day_key
from fieldsales_kernel.domain.payout import PayoutComputation, calculate_payout
from fieldsales_kernel.domain.payout_settings import (
    OperatingMode,
    PayoutLogicSettings,
    SeasonConfig,
)
from fieldsales_kernel.domain.values import CENTS, ZERO, round_money
from fieldsales_kernel.domain.worker import Bonus, Deduction, PayoutRecord, Worker
from fieldsales_kernel.exceptions import (
    AttendanceNotFinalizedError,
    CartNotFoundError,
    InvalidTransitionError,
    OperatingModeError,
)
from fieldsales_kernel.logging_config import LogContext, get_logger
from fieldsales_kernel.services.attendance_finalizer import is_attendance_finalized
from fieldsales_kernel.services.base import BaseService
from fieldsales_kernel.services.collaborators import BookingRepository
from fieldsales_kernel.services.repository import WorkforceRepository, WriteOutcome

logger = get_logger("services.payout")

ACTION_COMPLETE_PAYOUT = "complete_payout"


@dataclass(frozen=True)
class MemberAdjustments:
    """Deductions and bonuses entered for one worker."""

    deductions: tuple[Deduction, ...] = ()
    bonuses: tuple[Bonus, ...] = ()


@dataclass(frozen=True)
class PayoutPreview:
    """Computed but not recorded payout for a worker or cart."""

    worker_ids: tuple[str, ...]
    computation: PayoutComputation
    commission: Decimal


@dataclass(frozen=True)
class PayoutResult:
    """Recorded payouts, keyed by worker id."""

    day: date
    records: dict[str, PayoutRecord]
    computation: PayoutComputation
    persistence: WriteOutcome


@dataclass(frozen=True)
class DaySummary:
    """Totals over every worker who showed on ``day``."""

    day: date
    showed_count: int
    total_gross: Decimal
    total_equivalent: Decimal
    average_equivalent: Decimal
    cart_count: int = 0
    average_gross_per_cart: Decimal = ZERO
    average_equivalent_per_cart: Decimal = ZERO
    completed_payouts: int = 0


def round_equivalent(value: Decimal) -> Decimal:
    return round_money(value) if value else ZERO


def upsert_history(history: Sequence[PayoutRecord], record: PayoutRecord) -> tuple[PayoutRecord, ...]:
    """Replace the record for ``record.day`` or add it, keeping days in order."""
    kept = [r for r in history if r.day != record.day]
    return tuple(sorted([*kept, record], key=lambda r: r.day))


class PayoutService(BaseService):
    """Individual and cart payouts for the current day."""

    def __init__(
        self,
        repository: WorkforceRepository,
        season: SeasonConfig,
        bookings: BookingRepository,
        clock: Clock | None = None,
    ):
        super().__init__(repository, clock)
        self.season = season
        self.bookings = bookings

    @property
    def settings(self) -> PayoutLogicSettings:
        return self.season.payout

    @property
    def mode(self) -> OperatingMode:
        return self.season.operating_mode

    # -- helpers -----------------------------------------------------------

    def _require_finalized(self, day: date) -> None:
        if not is_attendance_finalized(self.repository, day):
            raise AttendanceNotFinalizedError(day_key(day))

    def _require_mode(self, mode: OperatingMode, operation: str) -> None:
        if self.mode != mode:
            raise OperatingModeError(operation, self.mode.value)

    def _require_showed(self, worker: Worker, day: date) -> None:
        if not worker.showed_on(day):
            raise InvalidTransitionError(
                worker.worker_id, ACTION_COMPLETE_PAYOUT, worker.booking_status.value,
                f"worker did not show on {day_key(day)}",
            )

    def _records_for(self, worker_ids: Iterable[str], day: date) -> list[BookingRecord]:
        records: list[BookingRecord] = []
        for worker_id in worker_ids:
            records.extend(self.bookings.get_completed_bookings_for_worker(worker_id, day))
        return records

    def _commission(
        self,
        worker: Worker,
        computation: PayoutComputation,
        equivalent: Decimal,
        adjusted_net: Decimal,
        solo: bool,
        manual_amount: Decimal | None,
    ) -> Decimal:
        strategy = CommissionStrategyRegistry.get(self.settings.commission_strategy)
        return strategy.compute(
            CommissionInput(
                equivalent=equivalent,
                adjusted_net=adjusted_net,
                mode=computation.mode,
                tenure=worker.tenure,
                settings=self.settings,
                solo=solo,
                total_days_worked=worker.total_days_worked,
                manual_amount=manual_amount,
            )
        )

    def _cart_members(self, cart_id: int, day: date) -> list[Worker]:
        if all(c.cart_id != cart_id for c in self.repository.load_carts()):
            raise CartNotFoundError(cart_id)
        return [
            w for w in self.repository.load_workers()
            if w.cart_id == cart_id and w.showed_on(day)
        ]

    # -- previews ----------------------------------------------------------

    def preview_worker_payout(
        self,
        worker_id: str,
        solo: bool = False,
        manual_commission: Decimal | None = None,
    ) -> PayoutPreview:
        today = self.today()
        worker = self.repository.get_worker(worker_id)
        computation = calculate_payout(
            self._records_for([worker_id], today), self.settings, today, self.mode
        )
        commission = self._commission(
            worker, computation, computation.equivalent, computation.adjusted_net,
            solo, manual_commission,
        )
        return PayoutPreview((worker_id,), computation, commission)

    def preview_cart_payout(self, cart_id: int) -> PayoutPreview:
        today = self.today()
        members = self._cart_members(cart_id, today)
        ids = tuple(m.worker_id for m in members)
        computation = calculate_payout(self._records_for(ids, today), self.settings, today, self.mode)
        total = ZERO
        if members:
            share_eq = computation.equivalent / len(members)
            share_net = computation.adjusted_net / len(members)
            total = sum(
                (self._commission(m, computation, share_eq, share_net, False, None) for m in members),
                ZERO,
            )
        return PayoutPreview(ids, computation, total)

    # -- completion --------------------------------------------------------

    def complete_worker_payout(
        self,
        worker_id: str,
        deductions: Iterable[Deduction] = (),
        bonuses: Iterable[Bonus] = (),
        solo: bool = False,
        manual_commission: Decimal | None = None,
    ) -> PayoutResult:
        """
        Record today's payout for one worker (Individual mode).

        Calling again for the same day overwrites that day's record.
        """
        self._require_mode(OperatingMode.INDIVIDUAL, "complete_worker_payout")
        with self.repository.critical_section(), LogContext.bind(worker_id=worker_id):
            today = self.today()
            self._require_finalized(today)
            worker = self.repository.get_worker(worker_id)
            self._require_showed(worker, today)

            computation = calculate_payout(
                self._records_for([worker_id], today), self.settings, today, self.mode
            )
            commission = self._commission(
                worker, computation, computation.equivalent, computation.adjusted_net,
                solo, manual_commission,
            )
            record = PayoutRecord(
                day=today,
                gross_sales=round_money(computation.gross_sales),
                equivalent=round_equivalent(computation.equivalent),
                commission=round_money(commission),
                deductions=tuple(deductions),
                bonuses=tuple(bonuses),
            )
            updated = worker.bumped(
                payout=record, payout_history=upsert_history(worker.payout_history, record)
            )
            persistence = self.repository.save_workers([updated])
            self._log_completed([record], [worker_id], computation, persistence)
            return PayoutResult(today, {worker_id: record}, computation, persistence)

    def complete_cart_payout(
        self,
        cart_id: int,
        adjustments: dict[str, MemberAdjustments] | None = None,
        manual_commission: Decimal | None = None,
    ) -> PayoutResult:
        """
        Record today's payout for every showed member of a cart (Team mode).

        The cart total is computed once; each member gets an even share of
        gross, equivalents and commission plus their own adjustments.
        """
        self._require_mode(OperatingMode.TEAM, "complete_cart_payout")
        adjustments = adjustments or {}
        with self.repository.critical_section():
            today = self.today()
            self._require_finalized(today)
            members = self._cart_members(cart_id, today)
            ids = [m.worker_id for m in members]
            computation = calculate_payout(self._records_for(ids, today), self.settings, today, self.mode)
            if not members:
                logger.warning("cart_payout_without_members", extra={"cart_id": cart_id})
                return PayoutResult(today, {}, computation, WriteOutcome())

            share = Decimal(len(members))
            share_eq = computation.equivalent / share
            share_net = computation.adjusted_net / share
            share_manual = manual_commission / share if manual_commission is not None else None

            records: dict[str, PayoutRecord] = {}
            updated = []
            for member in members:
                extra = adjustments.get(member.worker_id, MemberAdjustments())
                commission = self._commission(
                    member, computation, share_eq, share_net, False, share_manual
                )
                record = PayoutRecord(
                    day=today,
                    gross_sales=round_money(computation.gross_sales / share),
                    equivalent=round_equivalent(share_eq),
                    commission=round_money(commission),
                    deductions=extra.deductions,
                    bonuses=extra.bonuses,
                )
                records[member.worker_id] = record
                updated.append(
                    member.bumped(
                        payout=record,
                        payout_history=upsert_history(member.payout_history, record),
                    )
                )
            persistence = self.repository.save_workers(updated)
            self._log_completed(list(records.values()), ids, computation, persistence, cart_id)
            return PayoutResult(today, records, computation, persistence)

    def _log_completed(
        self,
        records: list[PayoutRecord],
        worker_ids: list[str],
        computation: PayoutComputation,
        persistence: WriteOutcome,
        cart_id: int | None = None,
    ) -> None:
        logger.info(
            "payout_completed",
            extra={
                "worker_ids": worker_ids,
                "cart_id": cart_id,
                "mode": computation.mode.value,
                "record_count": computation.record_count,
                "gross_sales": computation.gross_sales,
                "equivalent": computation.equivalent.quantize(CENTS),
                "commission_total": sum((r.commission for r in records), ZERO),
                "fallbacks": list(computation.fallbacks),
                "persistence": persistence.status.value,
            },
        )

    # -- summary -----------------------------------------------------------

    def day_summary(self) -> DaySummary:
        """Gross and equivalents over every worker who showed today."""
        today = self.today()
        showed = [w for w in self.repository.load_workers() if w.showed_on(today)]
        if not showed:
            return DaySummary(today, 0, ZERO, ZERO, ZERO)
        computation = calculate_payout(
            self._records_for([w.worker_id for w in showed], today),
            self.settings, today, self.mode,
        )
        total_eq = computation.equivalent
        summary = DaySummary(
            day=today,
            showed_count=len(showed),
            total_gross=round_money(computation.gross_sales),
            total_equivalent=round_equivalent(total_eq),
            average_equivalent=round_equivalent(total_eq / len(showed)),
            completed_payouts=sum(1 for w in showed if w.payout_completed_on(today)),
        )
        if self.mode == OperatingMode.TEAM:
            carts = self.repository.load_carts()
            if carts:
                count = len(carts)
                summary = replace(
                    summary,
                    cart_count=count,
                    average_gross_per_cart=round_money(computation.gross_sales / count),
                    average_equivalent_per_cart=round_equivalent(total_eq / count),
                )
        return summary
