import math
import logging
from collections import namedtuple
from decimal import Decimal, InvalidOperation

import timezone as tz

logger = logging.getLogger(__name__)

Trend = namedtuple('Trend', ['direction', 'percent_text'])

TREND_UP = 'up'
TREND_DOWN = 'down'
TREND_FLAT = 'flat'


def format_percent(value):
    if not math.isfinite(value) or not math.isfinite(value * 10):
        return '—'
    # Half-up to one decimal; round() would round halves to even.
    rounded = math.floor(value * 10 + 0.5) / 10
    text = str(int(rounded)) if rounded.is_integer() else str(rounded)
    return f"{'+' if rounded > 0 else ''}{text}%"


def get_trend(current, previous):
    if not math.isfinite(current) or not math.isfinite(previous):
        return Trend(TREND_FLAT, '—')
    if previous == 0:
        if current == 0:
            return Trend(TREND_FLAT, '0%')
        # No base to compare against; any growth from zero reads as +100%.
        return Trend(TREND_UP, '+100%')
    delta = (current - previous) / previous * 100
    if abs(delta) < 0.05:
        direction = TREND_FLAT
    elif delta > 0:
        direction = TREND_UP
    else:
        direction = TREND_DOWN
    return Trend(direction, format_percent(delta))


def _to_amount(value):
    if value is None:
        return Decimal('0')
    if isinstance(value, bool):
        raise tz.InvalidArgumentError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise tz.InvalidArgumentError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise tz.InvalidArgumentError(f"Invalid amount: {value!r}")
    return amount


def aggregate_by_local_day(day_ranges, events):
    """
    Bucket ``(instant, amount)`` pairs into local day ranges.

    Every range yields a row, days without events are zero-filled. Events
    outside all ranges are dropped.
    """
    buckets = [{'count': 0, 'total': Decimal('0')} for _ in day_ranges]
    dropped = 0

    for instant, amount in events:
        instant = tz.parse_instant(instant)
        for bucket, day in zip(buckets, day_ranges):
            if day.contains(instant):
                bucket['count'] += 1
                bucket['total'] += _to_amount(amount)
                break
        else:
            dropped += 1

    if dropped:
        logger.debug(f"[Stats] {dropped} events fell outside the requested days")

    series = []
    for bucket, day in zip(buckets, day_ranges):
        row = day.to_dict()
        row['label'] = day.day.strftime('%m-%d')
        row['count'] = bucket['count']
        row['total'] = float(bucket['total'])
        series.append(row)
    return series
