import os
import re
import logging

logger = logging.getLogger(__name__)

DEFAULT_ORDER_EXPIRE_MINUTES = 5

_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def get_order_expire_minutes(env_value=None):
    """
    Minutes an unpaid order keeps its stock reservation.
    The leading integer is used ("9.5" -> 9, "10abc" -> 10). Missing, malformed
    or non-positive values fall back to the default.
    """
    if env_value is None:
        env_value = os.environ.get('ORDER_EXPIRE_MINUTES')
    if env_value is None:
        return DEFAULT_ORDER_EXPIRE_MINUTES
    match = _LEADING_INT.match(str(env_value))
    minutes = int(match.group(1)) if match else 0
    if minutes <= 0:
        logger.warning(f"[Orders] Ignoring invalid ORDER_EXPIRE_MINUTES={env_value!r}, using {DEFAULT_ORDER_EXPIRE_MINUTES}")
        return DEFAULT_ORDER_EXPIRE_MINUTES
    return minutes
