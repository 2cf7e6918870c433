import pytest

import timezone as tz
from app import create_app
from cache import clear_all_cache

FIXED_NOW = tz.parse_instant('2026-03-10T15:00:00.000Z')


@pytest.fixture(autouse=True)
def fresh_offset_cache():
    clear_all_cache()
    yield
    clear_all_cache()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def app(fixed_clock):
    return create_app({
        'TESTING': True,
        'STATS_TIME_ZONE': 'America/New_York',
        'ORDER_EXPIRE_MINUTES': 5,
        'CLOCK': fixed_clock,
    })


@pytest.fixture
def client(app):
    return app.test_client()
