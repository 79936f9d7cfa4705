"""Report windows and the empty bucket series that span them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from cafe_analytics.config.supabase_client import ANALYTICS_TIMEZONE
from cafe_analytics.schemas import Bucket, Granularity

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
WEEKDAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
OVERVIEW_DAYS = 7

Reference = Union[date, datetime]


class InvalidGranularity(ValueError):
    """Raised when a report is requested for an unknown time resolution."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown granularity: {value!r}")
        self.value = value


@dataclass(frozen=True)
class ResolvedPeriod:
    """Half-open local window ``[start, end)`` of a report.

    ``granularity`` is ``None`` for the trailing-days window of the overview,
    which is bucketed per day like a month view.
    """

    granularity: Optional[Granularity]
    start: datetime
    end: datetime
    zone: tzinfo

    def contains(self, value: datetime) -> bool:
        local = to_local(value, self.zone)
        return self.start <= local < self.end

    def bucket_key(self, value: datetime) -> Optional[int]:
        """Index of the bucket ``value`` falls in, or ``None`` outside the window."""

        local = to_local(value, self.zone)
        if not self.start <= local < self.end:
            return None
        if self.granularity is Granularity.HOUR_OF_DAY:
            return local.hour
        if self.granularity is Granularity.MONTH_OF_YEAR:
            return local.month - 1
        return (local.date() - self.start.date()).days

    @property
    def bucket_count(self) -> int:
        if self.granularity is Granularity.HOUR_OF_DAY:
            return 24
        if self.granularity is Granularity.MONTH_OF_YEAR:
            return 12
        return (self.end.date() - self.start.date()).days


def coerce_granularity(value: Union[Granularity, str]) -> Granularity:
    if isinstance(value, Granularity):
        return value
    try:
        return Granularity(value)
    except ValueError as exc:
        raise InvalidGranularity(value) from exc


def resolve_zone(zone: Union[tzinfo, str, None] = None) -> tzinfo:
    if zone is None:
        return ZoneInfo(ANALYTICS_TIMEZONE)
    if isinstance(zone, str):
        return ZoneInfo(zone)
    return zone


def to_local(value: datetime, zone: tzinfo) -> datetime:
    """Express ``value`` in ``zone``; naive values are taken as local wall time."""

    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value.astimezone(zone)


def resolve_period(
    granularity: Union[Granularity, str],
    reference: Reference,
    zone: Union[tzinfo, str, None] = None,
) -> ResolvedPeriod:
    """Return the calendar day, month or year containing ``reference``."""

    selector = coerce_granularity(granularity)
    local_zone = resolve_zone(zone)
    day = _reference_day(reference, local_zone)

    if selector is Granularity.HOUR_OF_DAY:
        start_day = day
        end_day = day + timedelta(days=1)
    elif selector is Granularity.DAY_OF_MONTH:
        start_day = day.replace(day=1)
        end_day = _first_of_next_month(start_day)
    elif selector is Granularity.MONTH_OF_YEAR:
        start_day = date(day.year, 1, 1)
        end_day = date(day.year + 1, 1, 1)
    else:  # pragma: no cover - closed enum
        raise InvalidGranularity(selector)

    return ResolvedPeriod(
        granularity=selector,
        start=_local_midnight(start_day, local_zone),
        end=_local_midnight(end_day, local_zone),
        zone=local_zone,
    )


def resolve_trailing_days(
    reference: Reference,
    zone: Union[tzinfo, str, None] = None,
    days: int = OVERVIEW_DAYS,
) -> ResolvedPeriod:
    """Return the ``days`` local calendar days ending with the reference day."""

    if days < 1:
        raise ValueError("days must be positive")
    local_zone = resolve_zone(zone)
    last_day = _reference_day(reference, local_zone)
    first_day = last_day - timedelta(days=days - 1)
    return ResolvedPeriod(
        granularity=None,
        start=_local_midnight(first_day, local_zone),
        end=_local_midnight(last_day + timedelta(days=1), local_zone),
        zone=local_zone,
    )


def initialize_buckets(period: ResolvedPeriod) -> List[Bucket]:
    """Build one zero-valued bucket per unit of the window, oldest first."""

    zone = period.zone
    if period.granularity is Granularity.HOUR_OF_DAY:
        day = period.start.date()
        return [
            Bucket(
                label=f"{hour:02d}:00",
                order_index=hour,
                starts_at=datetime.combine(day, time(hour=hour), tzinfo=zone),
            )
            for hour in range(24)
        ]

    if period.granularity is Granularity.MONTH_OF_YEAR:
        year = period.start.year
        return [
            Bucket(
                label=MONTH_ABBREVIATIONS[month - 1],
                order_index=month - 1,
                starts_at=_local_midnight(date(year, month, 1), zone),
            )
            for month in range(1, 13)
        ]

    first_day = period.start.date()
    buckets: List[Bucket] = []
    for offset in range(period.bucket_count):
        day = first_day + timedelta(days=offset)
        if period.granularity is None:
            label = WEEKDAY_ABBREVIATIONS[day.weekday()]
        else:
            label = f"{MONTH_ABBREVIATIONS[day.month - 1]} {day.day}"
        buckets.append(Bucket(label=label, order_index=offset, starts_at=_local_midnight(day, zone)))
    return buckets


def _reference_day(reference: Reference, zone: tzinfo) -> date:
    if isinstance(reference, datetime):
        return to_local(reference, zone).date()
    return reference


def _local_midnight(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


__all__ = [
    "InvalidGranularity",
    "ResolvedPeriod",
    "coerce_granularity",
    "initialize_buckets",
    "resolve_period",
    "resolve_trailing_days",
    "resolve_zone",
    "to_local",
]
