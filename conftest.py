from datetime import datetime, timedelta, timezone

import pytest

from app import app as flask_app
from config import EmailConfig, Settings
from models import Order


NOW = datetime(2024, 6, 20, 12, 0, tzinfo=timezone.utc)


def order_payload(days_old=1, now=None, **overrides):
    """Upstream-shaped order JSON, created ``days_old`` days before ``now``."""
    now = now or NOW
    payload = {
        'id': 450789469,
        'name': '#2111',
        'email': 'customer@example.com',
        'customer': {'id': 207119551, 'email': 'customer@example.com'},
        'created_at': (now - timedelta(days=days_old)).isoformat(),
        'financial_status': 'paid',
        'fulfillment_status': None,
        'total_price': '2499.00',
        'currency': 'INR',
        'line_items': [
            {
                'id': 466157049,
                'name': 'Silk Saree - Maroon',
                'title': 'Silk Saree',
                'quantity': 1,
                'price': '2499.00',
                'variant_title': 'Maroon',
                'product_id': 632910392,
            }
        ],
        'shipping_address': {
            'first_name': 'Asha',
            'last_name': 'Rao',
            'address1': '12 MG Road',
            'city': 'Bengaluru',
            'province': 'Karnataka',
            'zip': '560001',
            'country': 'India',
        },
        'fulfillments': [],
    }
    payload.update(overrides)
    return payload


def make_order(days_old=1, now=None, **overrides):
    return Order.from_dict(order_payload(days_old, now, **overrides))


@pytest.fixture
def settings():
    return Settings(
        shop_domain='test-shop.myshopify.com',
        access_token='shpat_test',
        notify_secret='cron-secret',
        tracking_url='https://track.example.com/',
        email=EmailConfig(user='store@example.com', password='app-password'),
    )


@pytest.fixture
def app(settings):
    """The Flask app configured for tests with known settings."""
    original = flask_app.config['SETTINGS']
    flask_app.config.update({
        "TESTING": True,
        "SETTINGS": settings,
    })
    yield flask_app
    flask_app.config['SETTINGS'] = original


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield


@pytest.fixture
def commerce(mocker):
    """A stand-in CommerceClient with no orders, products or collections."""
    fake = mocker.Mock()
    fake.list_orders.return_value = []
    fake.get_product.return_value = {}
    fake.get_product_collections.return_value = []
    return fake
