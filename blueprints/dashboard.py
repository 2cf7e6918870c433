from flask import Blueprint, request, jsonify, current_app
from stats import LAST_N_DAYS, MAX_LAST_N_DAYS, get_today_range, get_last_n_days
from reporting import aggregate_by_local_day, get_trend
import timezone as tz
import logging

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/stats')


def _stats_context():
    return current_app.config['STATS_TIME_ZONE'], current_app.config['CLOCK']


def _days_arg(value):
    if value is None:
        return LAST_N_DAYS
    days = 0
    if not isinstance(value, bool):
        try:
            days = int(value)
        except (TypeError, ValueError):
            pass
    if not 1 <= days <= MAX_LAST_N_DAYS:
        raise tz.InvalidArgumentError(f"days must be an integer in [1, {MAX_LAST_N_DAYS}], got {value!r}")
    return days


@dashboard_bp.route('/windows', methods=['GET'])
def windows():
    zone_id, clock = _stats_context()
    days = _days_arg(request.args.get('days'))

    today = get_today_range(zone_id, clock)
    last_days = get_last_n_days(zone_id, days, clock)

    return jsonify({
        'time_zone': zone_id,
        'now': tz.format_iso(clock()),
        'today': today.to_dict(),
        'last_n_days': [day.to_dict() for day in last_days],
        'order_expire_minutes': current_app.config['ORDER_EXPIRE_MINUTES']
    })


@dashboard_bp.route('/daily-sales', methods=['POST'])
def daily_sales():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'invalid_request', 'message': 'Expected a JSON object'}), 400

    orders = data.get('orders', [])
    if not isinstance(orders, list) or not all(isinstance(o, dict) for o in orders):
        return jsonify({'error': 'invalid_request', 'message': 'orders must be a list of objects'}), 400

    zone_id, clock = _stats_context()
    days = _days_arg(data.get('days'))

    # Always fetch yesterday as well so today's trend has a baseline.
    ranges = get_last_n_days(zone_id, max(days, 2), clock)
    events = [(o.get('paid_at'), o.get('amount')) for o in orders if o.get('paid_at')]
    series = aggregate_by_local_day(ranges, events)

    today_row, yesterday_row = series[-1], series[-2]
    trend = get_trend(today_row['total'], yesterday_row['total'])

    logger.info(f"[Stats] Built {days}-day sales series in {zone_id} from {len(events)} orders")

    return jsonify({
        'time_zone': zone_id,
        'series': series[-days:],
        'today_sales': {'count': today_row['count'], 'total': today_row['total']},
        'today_trend': {'direction': trend.direction, 'percent_text': trend.percent_text}
    })
