"""
Worker Domain Models (``fieldsales_kernel.domain.worker``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of the daily workforce:
workers, their booking pipeline state, today's attendance, route managers,
next-day confirmation tracking and payout records.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.  Transitions
(``fieldsales_kernel.domain.transitions``) return new ``Worker`` instances
via ``dataclasses.replace``; the repository persists them.

Invariants enforced
-------------------
* ``PipelineState`` is a tagged variant: the booked date is present exactly
  for the dated statuses (today / next_day / calendar, optionally kept on
  no_show) and the sub-status exactly for the two sink statuses, with the
  sub-status matching its sink.
* ``AttendanceToday`` is separate from the pipeline.  Showing up never
  changes the booking status by itself.
* All monetary fields use ``Decimal``.
* Serialized form uses the store's camelCase keys; unbooked is an absent
  ``bookingStatus``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from fieldsales_kernel.domain.dates import day_key, parse_day
from fieldsales_kernel.domain.values import ZERO, to_decimal
from fieldsales_kernel.exceptions import InvalidPipelineStateError


class BookingStatus(str, Enum):
    """Pipeline state of a worker across the multi-day booking flow."""

    UNBOOKED = "unbooked"
    TODAY = "today"
    NEXT_DAY = "next_day"
    CALENDAR = "calendar"
    NO_SHOW = "no_show"
    WDR_TNB = "wdr_tnb"
    QUIT_FIRED = "quit_fired"

    @property
    def is_sink(self) -> bool:
        """Sink states are left only by explicit operator action."""
        return self in SINK_STATUSES

    @classmethod
    def parse(cls, value: str | None) -> BookingStatus:
        if value is None or value == "":
            return cls.UNBOOKED
        try:
            return cls(value)
        except ValueError:
            raise InvalidPipelineStateError(str(value), "unknown booking status") from None


class SubStatus(str, Enum):
    """Reason attached to a sink status."""

    WDR = "WDR"
    TNB = "TNB"
    QUIT = "Quit"
    FIRED = "Fired"


class Tenure(str, Enum):
    ROOKIE = "Rookie"
    ALUMNI = "Alumni"

    @classmethod
    def parse(cls, value: str | None) -> Tenure:
        return cls.ALUMNI if (value or "").strip().lower() == "alumni" else cls.ROOKIE


SINK_STATUSES = frozenset({BookingStatus.WDR_TNB, BookingStatus.QUIT_FIRED})

DATED_STATUSES = frozenset(
    {BookingStatus.TODAY, BookingStatus.NEXT_DAY, BookingStatus.CALENDAR}
)

SINK_SUB_STATUSES: dict[BookingStatus, frozenset[SubStatus]] = {
    BookingStatus.WDR_TNB: frozenset({SubStatus.WDR, SubStatus.TNB}),
    BookingStatus.QUIT_FIRED: frozenset({SubStatus.QUIT, SubStatus.FIRED}),
}


@dataclass(frozen=True)
class PipelineState:
    """
    Booking pipeline state as a tagged variant.

    Construct through the classmethods; ``__post_init__`` rejects any
    combination of status, booked date and sub-status that the pipeline
    cannot reach.
    """

    status: BookingStatus = BookingStatus.UNBOOKED
    booked_date: date | None = None
    sub_status: SubStatus | None = None

    def __post_init__(self):
        status = self.status
        if status in DATED_STATUSES and self.booked_date is None:
            raise InvalidPipelineStateError(status.value, "booked date is required")
        if status in SINK_STATUSES:
            if self.sub_status not in SINK_SUB_STATUSES[status]:
                raise InvalidPipelineStateError(
                    status.value,
                    f"sub-status must be one of "
                    f"{sorted(s.value for s in SINK_SUB_STATUSES[status])}",
                )
            if self.booked_date is not None:
                raise InvalidPipelineStateError(status.value, "sink states carry no booked date")
        elif self.sub_status is not None:
            raise InvalidPipelineStateError(status.value, "sub-status is only valid on sink states")
        if status == BookingStatus.UNBOOKED and self.booked_date is not None:
            raise InvalidPipelineStateError(status.value, "unbooked workers carry no booked date")

    @classmethod
    def unbooked(cls) -> PipelineState:
        return cls()

    @classmethod
    def booked_today(cls, day: date) -> PipelineState:
        return cls(BookingStatus.TODAY, day)

    @classmethod
    def booked_next_day(cls, day: date) -> PipelineState:
        return cls(BookingStatus.NEXT_DAY, day)

    @classmethod
    def booked_calendar(cls, day: date) -> PipelineState:
        return cls(BookingStatus.CALENDAR, day)

    @classmethod
    def no_show(cls, missed_day: date | None = None) -> PipelineState:
        return cls(BookingStatus.NO_SHOW, missed_day)

    @classmethod
    def sink(cls, status: BookingStatus, sub_status: SubStatus) -> PipelineState:
        return cls(status, None, sub_status)

    @property
    def is_sink(self) -> bool:
        return self.status.is_sink

    def is_due_on(self, day: date) -> bool:
        """Booked to work ``day``: status today, or a calendar booking for that day."""
        if self.status == BookingStatus.TODAY:
            return True
        return self.status == BookingStatus.CALENDAR and self.booked_date == day


@dataclass(frozen=True)
class AttendanceToday:
    """Did this worker show up, and on which day."""

    showed: bool = False
    showed_date: date | None = None

    def __post_init__(self):
        if self.showed and self.showed_date is None:
            raise ValueError("showed attendance requires showed_date")

    def is_present_on(self, day: date) -> bool:
        return self.showed and self.showed_date == day


@dataclass(frozen=True)
class RouteManager:
    """A supervisor a worker or cart reports to for the day."""

    name: str
    initials: str = ""

    UNASSIGNED_NAME = "Unassigned"

    @classmethod
    def from_full_name(cls, name: str) -> RouteManager:
        """Initials are the first letters of the first and last name parts."""
        parts = name.split()
        first = parts[0] if parts else ""
        last = parts[-1] if parts else ""
        return cls(name=name, initials=f"{first[:1]}{last[:1]}".upper())

    @property
    def is_unassigned(self) -> bool:
        return self.name == self.UNASSIGNED_NAME

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "initials": self.initials}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RouteManager | None:
        if not data or not data.get("name"):
            return None
        return cls(name=data["name"], initials=data.get("initials", ""))


UNASSIGNED = RouteManager(name=RouteManager.UNASSIGNED_NAME, initials="")


@dataclass(frozen=True)
class ConfirmationStatus:
    """Phone-confirmation tracking for the next operating day."""

    confirmed: bool = False
    left_message: int = 0
    not_available: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "confirmed": self.confirmed,
            "leftMessage": self.left_message,
            "notAvailable": self.not_available,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ConfirmationStatus:
        data = data or {}
        return cls(
            confirmed=bool(data.get("confirmed", False)),
            left_message=int(data.get("leftMessage", 0) or 0),
            not_available=int(data.get("notAvailable", 0) or 0),
        )


@dataclass(frozen=True)
class Deduction:
    id: int
    name: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "amount": str(self.amount)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Deduction:
        return cls(id=int(data["id"]), name=data.get("name", ""), amount=to_decimal(data.get("amount")))


@dataclass(frozen=True)
class Bonus:
    id: int
    type: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "amount": str(self.amount)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Bonus:
        return cls(id=int(data["id"]), type=data.get("type", ""), amount=to_decimal(data.get("amount")))


@dataclass(frozen=True)
class PayoutRecord:
    """One day's completed payout for a worker."""

    day: date
    gross_sales: Decimal
    equivalent: Decimal
    commission: Decimal
    deductions: tuple[Deduction, ...] = ()
    bonuses: tuple[Bonus, ...] = ()

    @property
    def total_deductions(self) -> Decimal:
        return sum((d.amount for d in self.deductions), ZERO)

    @property
    def total_bonuses(self) -> Decimal:
        return sum((b.amount for b in self.bonuses), ZERO)

    @property
    def net_payout(self) -> Decimal:
        return self.commission + self.total_bonuses - self.total_deductions

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": day_key(self.day),
            "grossSales": str(self.gross_sales),
            "equivalent": str(self.equivalent),
            "commission": str(self.commission),
            "deductions": [d.to_dict() for d in self.deductions],
            "bonuses": [b.to_dict() for b in self.bonuses],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayoutRecord:
        return cls(
            day=parse_day(data["date"]),
            gross_sales=to_decimal(data.get("grossSales")),
            equivalent=to_decimal(data.get("equivalent")),
            commission=to_decimal(data.get("commission")),
            deductions=tuple(Deduction.from_dict(d) for d in data.get("deductions") or ()),
            bonuses=tuple(Bonus.from_dict(b) for b in data.get("bonuses") or ()),
        )


@dataclass(frozen=True)
class Worker:
    """One field-sales representative."""

    worker_id: str
    first_name: str
    last_name: str
    tenure: Tenure = Tenure.ROOKIE
    cell_phone: str = ""
    home_phone: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    shuttle_line: str = ""
    days_worked: int = 0
    days_worked_previous_years: int = 0
    aeration_silvers_previous_years: int = 0
    rejuv_silvers_previous_years: int = 0
    sealing_silvers_previous_years: int = 0
    cleaning_silvers_previous_years: int = 0
    pipeline: PipelineState = field(default_factory=PipelineState)
    attendance: AttendanceToday = field(default_factory=AttendanceToday)
    route_manager: RouteManager | None = None
    cart_id: int | None = None
    confirmation: ConfirmationStatus = field(default_factory=ConfirmationStatus)
    no_shows: int = 0
    payout: PayoutRecord | None = None
    payout_history: tuple[PayoutRecord, ...] = ()
    version: int = 0

    def __post_init__(self):
        if not self.worker_id:
            raise ValueError("worker_id is required")
        if self.days_worked < 0:
            raise ValueError("days_worked cannot be negative")
        if self.no_shows < 0:
            raise ValueError("no_shows cannot be negative")

    # -- convenience views -------------------------------------------------

    @property
    def booking_status(self) -> BookingStatus:
        return self.pipeline.status

    @property
    def booked_date(self) -> date | None:
        return self.pipeline.booked_date

    @property
    def sub_status(self) -> SubStatus | None:
        return self.pipeline.sub_status

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def total_days_worked(self) -> int:
        """Alumni count prior seasons too; rookies only this season."""
        if self.tenure == Tenure.ALUMNI:
            return self.days_worked_previous_years + self.days_worked
        return self.days_worked

    @property
    def is_assigned(self) -> bool:
        return self.route_manager is not None or self.cart_id is not None

    def showed_on(self, day: date) -> bool:
        return self.attendance.is_present_on(day)

    def payout_completed_on(self, day: date) -> bool:
        return self.payout is not None and self.payout.day == day

    def bumped(self, **changes: Any) -> Worker:
        """Return a copy with ``changes`` applied and the version incremented."""
        return replace(self, version=self.version + 1, **changes)

    # -- serialization -----------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the store's worker record shape."""
        data: dict[str, Any] = {
            "contractorId": self.worker_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "cellPhone": self.cell_phone,
            "homePhone": self.home_phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "status": self.tenure.value,
            "daysWorked": self.days_worked,
            "daysWorkedPreviousYears": str(self.days_worked_previous_years),
            "aerationSilversPreviousYears": str(self.aeration_silvers_previous_years),
            "rejuvSilversPreviousYears": str(self.rejuv_silvers_previous_years),
            "sealingSilversPreviousYears": str(self.sealing_silvers_previous_years),
            "cleaningSilversPreviousYears": str(self.cleaning_silvers_previous_years),
            "shuttleLine": self.shuttle_line,
            "noShows": self.no_shows,
            "confirmationStatus": self.confirmation.to_dict(),
            "payoutHistory": [r.to_dict() for r in self.payout_history],
            "version": self.version,
        }
        if self.pipeline.status != BookingStatus.UNBOOKED:
            data["bookingStatus"] = self.pipeline.status.value
        if self.pipeline.booked_date is not None:
            data["bookedDate"] = day_key(self.pipeline.booked_date)
        if self.pipeline.sub_status is not None:
            data["subStatus"] = self.pipeline.sub_status.value
        if self.attendance.showed:
            data["showed"] = True
            data["showedDate"] = day_key(self.attendance.showed_date)
        if self.route_manager is not None:
            data["routeManager"] = self.route_manager.to_dict()
        data["cartId"] = self.cart_id
        if self.payout is not None:
            data["payoutCompleted"] = True
            data["payoutDate"] = day_key(self.payout.day)
            data["grossSales"] = str(self.payout.gross_sales)
            data["equivalent"] = str(self.payout.equivalent)
            data["commission"] = str(self.payout.commission)
            data["deductions"] = [d.to_dict() for d in self.payout.deductions]
            data["bonuses"] = [b.to_dict() for b in self.payout.bonuses]
        else:
            data["payoutCompleted"] = False
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Worker:
        """
        Parse a stored worker record.

        Raises:
            KeyError: if ``contractorId`` is missing.
            InvalidPipelineStateError: if the stored status fields are illegal.
        """
        status = BookingStatus.parse(data.get("bookingStatus"))
        sub_raw = data.get("subStatus")
        sub_status = SubStatus(sub_raw) if sub_raw and status.is_sink else None
        booked = parse_day(data.get("bookedDate")) if not status.is_sink else None
        if status == BookingStatus.UNBOOKED:
            booked = None
        pipeline = PipelineState(status, booked, sub_status)

        showed_date = parse_day(data.get("showedDate"))
        attendance = AttendanceToday(
            showed=bool(data.get("showed")) and showed_date is not None,
            showed_date=showed_date if data.get("showed") else None,
        )

        history = tuple(PayoutRecord.from_dict(r) for r in data.get("payoutHistory") or ())
        payout = None
        if data.get("payoutCompleted"):
            payout_day = parse_day(data.get("payoutDate"))
            if payout_day is None and history:
                payout_day = history[-1].day
            if payout_day is not None:
                payout = PayoutRecord(
                    day=payout_day,
                    gross_sales=to_decimal(data.get("grossSales")),
                    equivalent=to_decimal(data.get("equivalent")),
                    commission=to_decimal(data.get("commission")),
                    deductions=tuple(Deduction.from_dict(d) for d in data.get("deductions") or ()),
                    bonuses=tuple(Bonus.from_dict(b) for b in data.get("bonuses") or ()),
                )

        return cls(
            worker_id=str(data["contractorId"]),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            tenure=Tenure.parse(data.get("status")),
            cell_phone=data.get("cellPhone", "") or "",
            home_phone=data.get("homePhone", "") or "",
            email=data.get("email", "") or "",
            address=data.get("address", "") or "",
            city=data.get("city", "") or "",
            shuttle_line=data.get("shuttleLine", "") or "",
            days_worked=int(data.get("daysWorked") or 0),
            days_worked_previous_years=_int(data.get("daysWorkedPreviousYears")),
            aeration_silvers_previous_years=_int(data.get("aerationSilversPreviousYears")),
            rejuv_silvers_previous_years=_int(data.get("rejuvSilversPreviousYears")),
            sealing_silvers_previous_years=_int(data.get("sealingSilversPreviousYears")),
            cleaning_silvers_previous_years=_int(data.get("cleaningSilversPreviousYears")),
            pipeline=pipeline,
            attendance=attendance,
            route_manager=RouteManager.from_dict(data.get("routeManager")),
            cart_id=_int(data.get("cartId")) or None,
            confirmation=ConfirmationStatus.from_dict(data.get("confirmationStatus")),
            no_shows=int(data.get("noShows") or 0),
            payout=payout,
            payout_history=history,
            version=int(data.get("version") or 0),
        )


@dataclass(frozen=True)
class Cart:
    """A Team-mode sales unit; carts are numbered from 1."""

    cart_id: int
    route_manager: RouteManager | None = None

    def __post_init__(self):
        if self.cart_id < 1:
            raise ValueError("cart ids start at 1")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.cart_id}
        if self.route_manager is not None:
            data["routeManager"] = self.route_manager.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cart:
        return cls(
            cart_id=int(data["id"]),
            route_manager=RouteManager.from_dict(data.get("routeManager")),
        )


def _int(value: Any) -> int:
    """Parse the roster's string counters ("12", "", None)."""
    try:
        return int(str(value).strip()) if value not in (None, "") else 0
    except ValueError:
        return 0
