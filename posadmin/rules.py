from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
ALL_DAYS = "AllDays"
ALL_TIMES = "All Times"

TENDER_CARD = "card"
TENDER_CASH = "cash"

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

_HHMM = re.compile(r"^\d{2}:\d{2}$")

# "24:00" closes a window at midnight
MIDNIGHT = "24:00"
END_OF_DAY = time.max

# Only the first non-null field in this order is applied.
ADJUSTMENT_PRECEDENCE = ("amount_add", "amount_discount", "percent_add", "percent_discount")


def parse_hhmm(value: str) -> time:
    if not isinstance(value, str) or not _HHMM.match(value):
        raise ValueError(f"time must be HH:MM, got {value!r}")
    if value == MIDNIGHT:
        return END_OF_DAY
    return time.fromisoformat(value)


def format_hhmm(value: Optional[time]) -> Optional[str]:
    if value is None:
        return None
    return MIDNIGHT if value == END_OF_DAY else value.strftime("%H:%M")


def _before_end(at: time, end: time) -> bool:
    return at < end or end == END_OF_DAY


def day_index(day_name: str) -> int:
    try:
        return DAY_NAMES.index(day_name)
    except ValueError:
        raise ValueError(f"unknown day name {day_name!r}") from None


def round_price(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TimeWindow:
    # half-open [start, end)
    start: time
    end: time

    def contains(self, at: time) -> bool:
        return self.start <= at and _before_end(at, self.end)


def _coerce_time(value: Union[str, time]) -> time:
    return value if isinstance(value, time) else parse_hhmm(value)


@dataclass(frozen=True)
class EventSchedule:
    # one optional window per weekday, 0 = Monday
    windows: tuple[Optional[TimeWindow], ...] = (None,) * 7

    def __post_init__(self) -> None:
        if len(self.windows) != 7:
            raise ValueError("schedule needs exactly seven day slots")
        for day, window in enumerate(self.windows):
            if window is None:
                continue
            if window.start >= window.end:
                raise ValueError(
                    f"{DAY_NAMES[day]}: end time must be after start time "
                    "(overnight windows are not supported)"
                )

    @classmethod
    def from_mapping(cls, days: Mapping[int, tuple[Union[str, time], Union[str, time]]]) -> "EventSchedule":
        schedule = cls()
        for day, (start, end) in days.items():
            schedule = schedule.with_window(day, start, end)
        return schedule

    def with_window(self, day_of_week: int, start: Union[str, time], end: Union[str, time]) -> "EventSchedule":
        if not 0 <= day_of_week <= 6:
            raise ValueError(f"day_of_week must be 0..6, got {day_of_week}")
        slots = list(self.windows)
        slots[day_of_week] = TimeWindow(_coerce_time(start), _coerce_time(end))
        return replace(self, windows=tuple(slots))

    def without_day(self, day_of_week: int) -> "EventSchedule":
        if not 0 <= day_of_week <= 6:
            raise ValueError(f"day_of_week must be 0..6, got {day_of_week}")
        slots = list(self.windows)
        slots[day_of_week] = None
        return replace(self, windows=tuple(slots))

    def window_for(self, day_of_week: int) -> Optional[TimeWindow]:
        return self.windows[day_of_week]

    def as_dict(self) -> dict[int, TimeWindow]:
        return {day: window for day, window in enumerate(self.windows) if window is not None}


@dataclass(frozen=True)
class PricingEvent:
    code: str
    name: str = ""
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    windows: Mapping[int, TimeWindow] = field(default_factory=dict)
    amount_add: Optional[Decimal] = None
    amount_discount: Optional[Decimal] = None
    percent_add: Optional[Decimal] = None
    percent_discount: Optional[Decimal] = None

    def covers_date(self, on: date) -> bool:
        if self.start_date is not None and on < self.start_date:
            return False
        if self.end_date is not None and on > self.end_date:
            return False
        return True

    def matches(self, at: datetime) -> bool:
        if not self.is_active or not self.covers_date(at.date()):
            return False
        window = self.windows.get(at.weekday())
        return window is not None and window.contains(at.time())

    def adjustment(self) -> Optional[tuple[str, Decimal]]:
        for name in ADJUSTMENT_PRECEDENCE:
            value = getattr(self, name)
            if value is not None:
                return name, Decimal(value)
        return None


@dataclass(frozen=True)
class AvailabilityWindow:
    # None means AllDays / All Times
    day_of_week: Optional[int] = None
    start: Optional[time] = None
    end: Optional[time] = None

    def matches(self, at: datetime) -> bool:
        if self.day_of_week is not None and self.day_of_week != at.weekday():
            return False
        if self.start is None or self.end is None:
            return True
        return self.start <= at.time() and _before_end(at.time(), self.end)


@dataclass(frozen=True)
class AvailabilityRule:
    code: str
    windows: tuple[AvailabilityWindow, ...] = ()

    def allows(self, at: datetime) -> bool:
        return any(window.matches(at) for window in self.windows)


@dataclass(frozen=True)
class ItemRule:
    code: str
    base_price: Decimal
    card_price: Optional[Decimal] = None
    cash_price: Optional[Decimal] = None
    is_active: bool = True
    is_out_of_stock: bool = False
    inherit_modifier_group: bool = True
    modifier_groups: frozenset[str] = frozenset()
    tax_code: Optional[str] = None


@dataclass(frozen=True)
class CategoryRule:
    code: str
    is_active: bool = True
    modifier_groups: frozenset[str] = frozenset()
    # tax of the owning menu master
    tax_code: Optional[str] = None


@dataclass(frozen=True)
class Resolution:
    is_orderable: bool
    effective_price: Decimal
    base_price: Decimal
    applied_event: Optional[str] = None
    reason: Optional[str] = None


def select_base_price(item: ItemRule, tender: Optional[str] = None) -> Decimal:
    if tender == TENDER_CARD and item.card_price is not None:
        return Decimal(item.card_price)
    if tender == TENDER_CASH and item.cash_price is not None:
        return Decimal(item.cash_price)
    return Decimal(item.base_price)


def matching_events(events: Iterable[PricingEvent], at: datetime) -> list[PricingEvent]:
    return sorted((event for event in events if event.matches(at)), key=lambda event: event.code)


def apply_adjustment(price: Decimal, event: PricingEvent) -> Decimal:
    adjustment = event.adjustment()
    if adjustment is None:
        return price
    name, value = adjustment
    if name == "amount_add":
        return price + value
    if name == "amount_discount":
        return max(ZERO, price - value)
    if name == "percent_add":
        return price * (1 + value / HUNDRED)
    return max(ZERO, price * (1 - value / HUNDRED))


def is_available(availabilities: Iterable[AvailabilityRule], at: datetime) -> bool:
    return all(rule.allows(at) for rule in availabilities)


def resolve_item(
    item: ItemRule,
    category: Optional[CategoryRule],
    events: Iterable[PricingEvent],
    availabilities: Iterable[AvailabilityRule],
    at: datetime,
    tender: Optional[str] = None,
) -> Resolution:
    base = select_base_price(item, tender)
    rounded_base = round_price(base)

    if not item.is_active or (category is not None and not category.is_active):
        return Resolution(False, rounded_base, rounded_base, reason="inactive")
    if item.is_out_of_stock:
        return Resolution(False, rounded_base, rounded_base, reason="out_of_stock")
    if not is_available(availabilities, at):
        return Resolution(False, rounded_base, rounded_base, reason="unavailable")

    matches = matching_events(events, at)
    if not matches:
        return Resolution(True, rounded_base, rounded_base)

    event = matches[0]
    if len(matches) > 1:
        logger.debug(
            "item %s matched %d events at %s, applying %s",
            item.code,
            len(matches),
            at.isoformat(),
            event.code,
        )
    price = round_price(apply_adjustment(base, event))
    return Resolution(True, price, rounded_base, applied_event=event.code)


MenuEntry = tuple[ItemRule, Optional[CategoryRule], Sequence[AvailabilityRule]]


def resolve_menu(
    entries: Iterable[MenuEntry],
    events: Iterable[PricingEvent],
    at: datetime,
    tender: Optional[str] = None,
) -> dict[str, Resolution]:
    events = list(events)
    return {
        item.code: resolve_item(item, category, events, gates, at, tender)
        for item, category, gates in entries
    }


@dataclass(frozen=True)
class LineQuote:
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    tax: Decimal


def quote_line(
    resolution: Resolution,
    modifier_prices: Iterable[Decimal],
    quantity: int,
    tax_rate: Optional[Decimal] = None,
) -> LineQuote:
    unit_price = round_price(resolution.effective_price + sum((Decimal(p) for p in modifier_prices), ZERO))
    subtotal = round_price(unit_price * quantity)
    tax = round_price(subtotal * Decimal(tax_rate) / HUNDRED) if tax_rate else round_price(ZERO)
    return LineQuote(unit_price, quantity, subtotal, tax)


def resolve_modifier_groups(item: ItemRule, category: Optional[CategoryRule]) -> frozenset[str]:
    if item.inherit_modifier_group and category is not None:
        return item.modifier_groups | category.modifier_groups
    return item.modifier_groups


def resolve_tax_code(item: ItemRule, category: Optional[CategoryRule]) -> Optional[str]:
    if item.tax_code:
        return item.tax_code
    if category is not None:
        return category.tax_code
    return None
