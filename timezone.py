"""
Timezone-correct calendar arithmetic for dashboard statistics.

Absolute instants are aware datetimes normalized to UTC with millisecond
precision. Civil (wall-clock) fields only mean something together with a zone
id. Every statistics boundary ("today", "last N days", order expiry) is computed
in an explicitly passed statistics zone, never the host machine's zone.

Offsets come from a single capability, ``oracle(instant_ms, zone_id) -> offset_ms``.
``offset_at`` is the tz-database backed default; any callable with the same
contract can be passed instead.
"""

import calendar
import logging
import math
import numbers
from dataclasses import dataclass, replace
from datetime import datetime, date, timedelta, timezone as dt_timezone, MINYEAR, MAXYEAR
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cache import offset_cache

logger = logging.getLogger(__name__)

UTC = dt_timezone.utc
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)

# One day inside the datetime range on both ends, so any UTC offset stays representable.
MIN_CIVIL_YEAR = MINYEAR + 1
MAX_CIVIL_YEAR = MAXYEAR - 1
_MIN_LOOKUP_MS = (datetime(MINYEAR, 1, 2, tzinfo=UTC) - _EPOCH) // _ONE_MS
_MAX_LOOKUP_MS = (datetime(MAXYEAR, 12, 30, tzinfo=UTC) - _EPOCH) // _ONE_MS


class TimeZoneError(Exception):
    pass


class UnknownZoneError(TimeZoneError, LookupError):
    def __init__(self, zone_id):
        self.zone_id = zone_id
        super().__init__(f"Unknown time zone: {zone_id!r}")


class InvalidCivilFieldsError(TimeZoneError, ValueError):
    pass


class InvalidArgumentError(TimeZoneError, ValueError):
    pass


def utc_now():
    return from_epoch_ms(to_epoch_ms(datetime.now(UTC)))


def to_epoch_ms(instant):
    if not isinstance(instant, datetime):
        raise InvalidArgumentError(f"Expected a datetime instant, got {type(instant).__name__}")
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise InvalidArgumentError(f"Naive datetime {instant.isoformat()} does not name an instant")
    delta = instant - _EPOCH
    return (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_ms(instant_ms):
    try:
        return _EPOCH + timedelta(milliseconds=instant_ms)
    except OverflowError as e:
        raise InvalidArgumentError(f"Instant {instant_ms}ms is outside the supported calendar") from e


def format_iso(instant):
    return instant.astimezone(UTC).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class CivilFields:
    """Wall-clock reading of a zone. Not guaranteed to name exactly one instant."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    millisecond: int = 0

    def validate(self):
        for name in ('year', 'month', 'day', 'hour', 'minute', 'second', 'millisecond'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidCivilFieldsError(f"{name} must be an integer, got {value!r}")
        if not MIN_CIVIL_YEAR <= self.year <= MAX_CIVIL_YEAR:
            raise InvalidCivilFieldsError(f"year {self.year} out of range [{MIN_CIVIL_YEAR}, {MAX_CIVIL_YEAR}]")
        if not 1 <= self.month <= 12:
            raise InvalidCivilFieldsError(f"month {self.month} out of range [1, 12]")
        days_in_month = calendar.monthrange(self.year, self.month)[1]
        if not 1 <= self.day <= days_in_month:
            raise InvalidCivilFieldsError(
                f"day {self.day} out of range [1, {days_in_month}] for {self.year:04d}-{self.month:02d}"
            )
        if not 0 <= self.hour <= 23:
            raise InvalidCivilFieldsError(f"hour {self.hour} out of range [0, 23]")
        if not 0 <= self.minute <= 59:
            raise InvalidCivilFieldsError(f"minute {self.minute} out of range [0, 59]")
        if not 0 <= self.second <= 59:
            raise InvalidCivilFieldsError(f"second {self.second} out of range [0, 59]")
        if not 0 <= self.millisecond <= 999:
            raise InvalidCivilFieldsError(f"millisecond {self.millisecond} out of range [0, 999]")
        return self

    @property
    def local_date(self):
        return date(self.year, self.month, self.day)

    def with_date(self, d):
        return replace(self, year=d.year, month=d.month, day=d.day)

    def with_time(self, hour=0, minute=0, second=0, millisecond=0):
        return replace(self, hour=hour, minute=minute, second=second, millisecond=millisecond)

    def as_utc_epoch_ms(self):
        wall = datetime(self.year, self.month, self.day, self.hour, self.minute, self.second,
                        self.millisecond * 1000, tzinfo=UTC)
        return to_epoch_ms(wall)

    def isoformat(self):
        return (f"{self.year:04d}-{self.month:02d}-{self.day:02d}"
                f"T{self.hour:02d}:{self.minute:02d}:{self.second:02d}.{self.millisecond:03d}")


@dataclass(frozen=True)
class LocalDayRange:
    """Half-open [start, end) span of one local calendar day."""

    day: date
    start: datetime
    end: datetime

    @property
    def duration(self):
        return self.end - self.start

    def contains(self, instant):
        return self.start <= instant < self.end

    def to_dict(self):
        return {
            'date': self.day.isoformat(),
            'start': format_iso(self.start),
            'end': format_iso(self.end),
        }


def get_zone(zone_id):
    if not isinstance(zone_id, str) or not zone_id:
        raise UnknownZoneError(zone_id)
    try:
        return ZoneInfo(zone_id)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        logger.debug(f"[TimeZone] Could not resolve zone {zone_id!r}: {e}")
        raise UnknownZoneError(zone_id) from e


def offset_at(instant_ms, zone_id):
    """UTC offset of ``zone_id`` at ``instant_ms``, in milliseconds east of UTC."""
    zone = get_zone(zone_id)
    # Converting near year 1 or 9999 overflows datetime; offsets there are flat.
    instant_ms = min(max(instant_ms, _MIN_LOOKUP_MS), _MAX_LOOKUP_MS)
    key = (zone_id, instant_ms)
    cached, hit = offset_cache.get(key)
    if hit:
        return cached
    offset_ms = from_epoch_ms(instant_ms).astimezone(zone).utcoffset() // _ONE_MS
    offset_cache.set(key, offset_ms)
    return offset_ms


def _civil_at(instant_ms, zone_id, oracle):
    wall = from_epoch_ms(instant_ms + oracle(instant_ms, zone_id))
    # The sub-second part comes from the instant itself; offsets never move it.
    return CivilFields(wall.year, wall.month, wall.day, wall.hour, wall.minute, wall.second,
                       instant_ms % 1000)


def resolve_civil(instant, zone_id, oracle=None):
    """Civil fields observed in ``zone_id`` at ``instant``."""
    return _civil_at(to_epoch_ms(instant), zone_id, oracle or offset_at)


def _synthesize_ms(fields, zone_id, oracle):
    local_as_utc = fields.as_utc_epoch_ms()
    first_offset = oracle(local_as_utc, zone_id)
    candidate = local_as_utc - first_offset
    second_offset = oracle(candidate, zone_id)
    if second_offset != first_offset:
        logger.debug(
            f"[TimeZone] Offset moved across a transition for {fields.isoformat()} in {zone_id}: "
            f"{first_offset}ms -> {second_offset}ms"
        )
        candidate = local_as_utc - second_offset
    return candidate


def synthesize_instant(fields, zone_id, oracle=None):
    """
    Absolute instant for civil ``fields`` read in ``zone_id``.

    Two-step fixed point: read the fields as UTC, subtract the offset found
    there, then look the offset up again at the corrected instant. If the two
    lookups disagree, the second offset wins. The result is always a single
    instant, even when the wall-clock time is skipped or repeated:

    - zones west of UTC resolve a repeated time to its first occurrence and a
      skipped time to one hour earlier on the wall clock;
    - zones east of UTC resolve a repeated time to its second occurrence and a
      skipped time to one hour later.
    """
    if not isinstance(fields, CivilFields):
        raise InvalidCivilFieldsError(f"Expected CivilFields, got {type(fields).__name__}")
    fields.validate()
    return from_epoch_ms(_synthesize_ms(fields, zone_id, oracle or offset_at))


def _whole_days(value, name='delta_days'):
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real) and math.isfinite(value) and float(value).is_integer():
        return int(value)
    raise InvalidArgumentError(f"{name} must be a finite whole number, got {value!r}")


def _shift_date(d, days):
    try:
        shifted = d + timedelta(days=days)
    except OverflowError as e:
        raise InvalidArgumentError(f"Shifting {d.isoformat()} by {days} days leaves the calendar") from e
    if not MIN_CIVIL_YEAR <= shifted.year <= MAX_CIVIL_YEAR:
        raise InvalidArgumentError(f"Shifting {d.isoformat()} by {days} days leaves the calendar")
    return shifted


def _day_start_ms(d, zone_id, oracle):
    return _synthesize_ms(CivilFields(d.year, d.month, d.day), zone_id, oracle)


def add_calendar_days(instant, delta_days, zone_id, oracle=None):
    """
    Move ``instant`` by whole local calendar days, keeping its wall-clock time.

    Across a DST transition the absolute distance is 23 or 25 hours per day,
    not 24. A time of day that does not exist on the target date is resolved
    by ``synthesize_instant``.
    """
    days = _whole_days(delta_days)
    oracle = oracle or offset_at
    civil = resolve_civil(instant, zone_id, oracle)
    target = civil.with_date(_shift_date(civil.local_date, days))
    return from_epoch_ms(_synthesize_ms(target, zone_id, oracle))


def local_day_start(instant, zone_id, oracle=None):
    oracle = oracle or offset_at
    civil = resolve_civil(instant, zone_id, oracle)
    return from_epoch_ms(_synthesize_ms(civil.with_time(), zone_id, oracle))


def local_day_end(instant, zone_id, oracle=None):
    oracle = oracle or offset_at
    civil = resolve_civil(instant, zone_id, oracle)
    return from_epoch_ms(_synthesize_ms(civil.with_time(23, 59, 59, 999), zone_id, oracle))


def last_n_local_days(reference, n, zone_id, oracle=None):
    """
    ``n`` contiguous local day ranges, oldest first, ending with the day that
    contains ``reference``.
    """
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 1:
        raise InvalidArgumentError(f"n must be a positive integer, got {n!r}")
    oracle = oracle or offset_at
    today = resolve_civil(reference, zone_id, oracle).local_date
    first = _shift_date(today, -(int(n) - 1))

    ranges = []
    start_ms = _day_start_ms(first, zone_id, oracle)
    for i in range(int(n)):
        day = _shift_date(first, i)
        end_ms = _day_start_ms(_shift_date(day, 1), zone_id, oracle)
        ranges.append(LocalDayRange(day, from_epoch_ms(start_ms), from_epoch_ms(end_ms)))
        start_ms = end_ms
    return ranges


def parse_instant(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return from_epoch_ms(to_epoch_ms(value))
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError as e:
            raise InvalidArgumentError(f"Unparseable instant: {value!r}") from e
        if dt.tzinfo is None:
            raise InvalidArgumentError(f"Instant {value!r} has no UTC offset")
        return from_epoch_ms(to_epoch_ms(dt))
    raise InvalidArgumentError(f"Expected an ISO-8601 string or datetime, got {type(value).__name__}")


def format_instant(instant, zone_id, fmt='%Y-%m-%d %H:%M', oracle=None):
    if instant is None:
        return ''
    civil = resolve_civil(instant, zone_id, oracle)
    wall = datetime(civil.year, civil.month, civil.day, civil.hour, civil.minute, civil.second,
                    civil.millisecond * 1000)
    return wall.strftime(fmt)
