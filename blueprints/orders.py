from flask import Blueprint, request, jsonify, current_app
from expiry import get_expire_time, is_expired, get_remaining_seconds, format_remaining_time
import timezone as tz

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('/expiry', methods=['GET'])
def expiry():
    created_at = request.args.get('created_at', '')
    if not created_at:
        return jsonify({'error': 'invalid_argument', 'message': 'created_at is required'}), 400

    created = tz.parse_instant(created_at)
    now = current_app.config['CLOCK']()
    zone_id = current_app.config['STATS_TIME_ZONE']
    expires_at = get_expire_time(current_app.config['ORDER_EXPIRE_MINUTES'], now=created)
    remaining = get_remaining_seconds(expires_at, now=now)

    return jsonify({
        'created_at': tz.format_iso(created),
        'expires_at': tz.format_iso(expires_at),
        'expires_at_local': tz.format_instant(expires_at, zone_id),
        'expired': is_expired(expires_at, now=now),
        'remaining_seconds': remaining,
        'remaining_text': format_remaining_time(remaining)
    })
