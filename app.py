import os
import logging
from flask import Flask, jsonify
from stats import get_stats_time_zone
from order_config import get_order_expire_minutes
import timezone as tz

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def create_app(config=None):
    app = Flask(__name__)

    app.config['SECRET_KEY'] = os.environ.get('SESSION_SECRET', 'dev-secret-key')
    app.config['STATS_TIME_ZONE'] = get_stats_time_zone()
    app.config['ORDER_EXPIRE_MINUTES'] = get_order_expire_minutes()
    app.config['CLOCK'] = tz.utc_now
    if config:
        app.config.update(config)

    from blueprints.dashboard import dashboard_bp
    from blueprints.orders import orders_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(orders_bp)

    @app.route('/health')
    def health_check():
        return 'OK', 200

    @app.errorhandler(tz.UnknownZoneError)
    def unknown_zone(e):
        # Never fall back to another zone.
        logger.error(f"[App] Statistics time zone is misconfigured: {e}")
        return jsonify({'error': 'unknown_zone', 'message': str(e)}), 500

    @app.errorhandler(tz.InvalidArgumentError)
    @app.errorhandler(tz.InvalidCivilFieldsError)
    def invalid_argument(e):
        return jsonify({'error': 'invalid_argument', 'message': str(e)}), 400

    logger.info(f"[App] Statistics time zone: {app.config['STATS_TIME_ZONE']}")
    logger.info(f"[App] Order expiry: {app.config['ORDER_EXPIRE_MINUTES']} minutes")

    return app

app = create_app()

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=True)
