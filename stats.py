"""
Statistics windows in the configured statistics time zone.

The zone is passed to every call; nothing here reads process-wide state
except ``get_stats_time_zone``, which only looks at the environment.
"""

import os
import logging
import timezone as tz

logger = logging.getLogger(__name__)

DEFAULT_STATS_TIME_ZONE = 'Asia/Shanghai'
LAST_N_DAYS = 7
MAX_LAST_N_DAYS = 366


def get_stats_time_zone(env_value=None):
    if env_value is None:
        env_value = os.environ.get('STATS_TIME_ZONE')
    value = (env_value or '').strip()
    if not value:
        return DEFAULT_STATS_TIME_ZONE
    return value


def get_today_range(zone_id, clock=tz.utc_now):
    today = tz.last_n_local_days(clock(), 1, zone_id)[0]
    logger.debug(f"[Stats] Today in {zone_id}: {tz.format_iso(today.start)} -> {tz.format_iso(today.end)}")
    return today


def get_last_n_days(zone_id, n=LAST_N_DAYS, clock=tz.utc_now):
    return tz.last_n_local_days(clock(), n, zone_id)
