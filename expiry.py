import math
import timezone as tz


def get_expire_time(minutes, now=None):
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or not math.isfinite(minutes):
        raise tz.InvalidArgumentError(f"minutes must be a finite number, got {minutes!r}")
    if now is None:
        now = tz.utc_now()
    return tz.from_epoch_ms(tz.to_epoch_ms(now) + int(minutes * 60 * 1000))


def is_expired(expire_time, now=None):
    if not expire_time:
        return False
    expire = tz.parse_instant(expire_time)
    if now is None:
        now = tz.utc_now()
    return tz.to_epoch_ms(now) > tz.to_epoch_ms(expire)


def get_remaining_seconds(expire_time, now=None):
    expire = tz.parse_instant(expire_time)
    if now is None:
        now = tz.utc_now()
    remaining_ms = tz.to_epoch_ms(expire) - tz.to_epoch_ms(now)
    return max(0, remaining_ms // 1000)


def format_remaining_time(seconds):
    if seconds <= 0:
        return 'Expired'

    seconds = int(seconds)
    minutes, secs = divmod(seconds, 60)

    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}:{mins:02d}:{secs:02d}"

    return f"{minutes}:{secs:02d}"
