from datetime import datetime, timezone

import pytest

from conftest import order_payload
from helpers.errors import TransportError, UpstreamError
from models import Order


def recent_order(days_old, **overrides):
    """An order created ``days_old`` days before the real current time."""
    return Order.from_dict(order_payload(days_old, now=datetime.now(timezone.utc), **overrides))


@pytest.fixture
def commerce_client(mocker, commerce):
    """Routes the app's CommerceClient to the stand-in client."""
    mocker.patch('app.CommerceClient', return_value=commerce)
    return commerce


# --- Lookup page ---

def test_index_serves_lookup_page(client):
    rv = client.get('/')
    assert rv.status_code == 200
    assert b"Track Your Order" in rv.data


# --- /lookup: request handling ---

def test_lookup_preflight(client):
    rv = client.options('/lookup')
    assert rv.status_code == 200
    assert rv.data == b""
    assert rv.headers['Access-Control-Allow-Origin'] == '*'
    assert 'POST' in rv.headers['Access-Control-Allow-Methods']


def test_lookup_rejects_other_methods(client):
    rv = client.get('/lookup')
    assert rv.status_code == 405
    assert rv.get_json() == {'success': False, 'message': 'Method not allowed'}


@pytest.mark.parametrize('body', [
    {},
    {'orderNumber': '#2111'},
    {'email': 'customer@example.com'},
    {'orderNumber': '  ', 'email': 'customer@example.com'},
])
def test_lookup_requires_order_number_and_email(client, body):
    rv = client.post('/lookup', json=body)
    assert rv.status_code == 400
    assert rv.get_json() == {'success': False, 'message': 'Order number and email are required'}


# --- /lookup: outcomes ---

def test_lookup_zip_and_go_order(client, commerce_client):
    commerce_client.list_orders.return_value = [
        recent_order(12, line_items=[{'name': 'Zip & GO Saree', 'quantity': 1, 'price': '3100.00'}]),
    ]
    rv = client.post('/lookup', json={'orderNumber': '#2111', 'email': 'CUSTOMER@example.com'})

    assert rv.status_code == 200
    assert rv.headers['Access-Control-Allow-Origin'] == '*'
    data = rv.get_json()
    assert data['success'] is True
    assert data['order']['custom_status'] == {'stage': 'finishing', 'message': 'Finishing & Packing', 'days': 2}
    assert data['order']['is_zip_and_go'] is True


def test_lookup_standard_order(client, commerce_client):
    commerce_client.list_orders.return_value = [recent_order(2, financial_status='pending')]
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'customer@example.com'})
    data = rv.get_json()
    assert data['order']['custom_status'] == {'stage': 'pending', 'message': 'Payment Pending', 'days': 2}
    assert data['order']['is_zip_and_go'] is False


def test_lookup_wrong_email_is_not_found(client, commerce_client):
    commerce_client.list_orders.return_value = [recent_order(2)]
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'intruder@example.com'})
    assert rv.status_code == 200
    assert rv.get_json() == {
        'success': False,
        'message': 'Order not found. Please check your order number and email address.',
    }


def test_lookup_order_without_email_is_returned(client, commerce_client):
    commerce_client.list_orders.return_value = [recent_order(2, email=None, customer=None)]
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'anyone@example.com'})
    assert rv.get_json()['success'] is True


def test_lookup_honours_emailless_setting(client, commerce_client, settings):
    settings.allow_emailless_match = False
    commerce_client.list_orders.return_value = [recent_order(2, email=None, customer=None)]
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'anyone@example.com'})
    assert rv.get_json()['success'] is False


# --- /lookup: failures ---

def test_lookup_missing_credentials(client, settings):
    settings.access_token = None
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'customer@example.com'})
    assert rv.status_code == 500
    assert rv.get_json() == {'success': False, 'message': 'Server configuration error'}


def test_lookup_upstream_error(client, commerce_client):
    commerce_client.list_orders.side_effect = UpstreamError(503, 'Service Unavailable')
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'customer@example.com'})
    assert rv.status_code == 500
    assert rv.get_json()['message'] == 'Unable to connect to order system'


def test_lookup_transport_error(client, commerce_client):
    commerce_client.list_orders.side_effect = TransportError('connection reset')
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'customer@example.com'})
    assert rv.status_code == 500
    assert b"Please try again later" in rv.data


def test_lookup_classification_failure_does_not_abort(client, commerce_client):
    commerce_client.list_orders.return_value = [recent_order(3)]
    commerce_client.get_product.side_effect = TransportError('timed out')
    commerce_client.get_product_collections.side_effect = TransportError('timed out')
    rv = client.post('/lookup', json={'orderNumber': '2111', 'email': 'customer@example.com'})
    assert rv.status_code == 200
    assert rv.get_json()['order']['custom_status']['stage'] == 'processing'


# --- /notify ---

@pytest.fixture
def mailer(mocker):
    fake = mocker.Mock()
    mocker.patch('app.SmtpMailer', return_value=fake)
    return fake


@pytest.mark.parametrize('body', [{}, {'apiKey': ''}, {'apiKey': 'guess'}])
def test_notify_rejects_bad_api_key(client, commerce_client, mailer, body):
    rv = client.post('/notify', json=body)
    assert rv.status_code == 401
    assert rv.get_json()['success'] is False
    commerce_client.list_orders.assert_not_called()


def test_notify_without_configured_secret(client, settings):
    settings.notify_secret = None
    rv = client.post('/notify', json={})
    assert rv.status_code == 500


def test_notify_sends_reminders(client, commerce_client, mailer):
    commerce_client.list_orders.return_value = [
        recent_order(6, name='#1'),
        recent_order(7, name='#2'),
    ]
    rv = client.post('/notify', json={'apiKey': 'cron-secret'})

    assert rv.status_code == 200
    data = rv.get_json()
    assert data['success'] is True
    assert data['stats'] == {'totalOrders': 2, 'eligibleOrders': 1, 'emailsSent': 1, 'errors': 0}
    assert 'errors' not in data
    mailer.send.assert_called_once()


def test_notify_reports_failed_sends(client, commerce_client, mailer):
    commerce_client.list_orders.return_value = [recent_order(9, name='#9')]
    mailer.send.side_effect = OSError('SMTP down')
    rv = client.post('/notify', json={'apiKey': 'cron-secret'})

    data = rv.get_json()
    assert rv.status_code == 200
    assert data['stats']['errors'] == 1
    assert data['errors'] == [{'order': '#9', 'email': 'customer@example.com', 'error': 'SMTP down'}]


def test_notify_upstream_failure(client, commerce_client, mailer):
    commerce_client.list_orders.side_effect = UpstreamError(500, 'boom')
    rv = client.post('/notify', json={'apiKey': 'cron-secret'})
    assert rv.status_code == 500
    assert rv.get_json()['success'] is False


def test_notify_missing_email_credentials(client, commerce_client, settings):
    settings.email.password = None
    rv = client.post('/notify', json={'apiKey': 'cron-secret'})
    assert rv.status_code == 500
    assert rv.get_json()['error'] == 'Server configuration error'


def test_notify_rejects_non_ascii_api_key(client, commerce_client, mailer):
    rv = client.post('/notify', json={'apiKey': 'clé-secrète'})
    assert rv.status_code == 401
    assert rv.get_json() == {'success': False, 'error': 'Unauthorized'}
    commerce_client.list_orders.assert_not_called()


def test_notify_accepts_non_ascii_secret(client, commerce_client, mailer, settings):
    settings.notify_secret = 'clé-secrète'
    rv = client.post('/notify', json={'apiKey': 'clé-secrète'})
    assert rv.status_code == 200
    assert rv.get_json()['success'] is True


@pytest.mark.parametrize('body', [['x'], 'cron-secret', 42])
def test_notify_non_object_body_is_unauthorized(client, commerce_client, mailer, body):
    rv = client.post('/notify', json=body)
    assert rv.status_code == 401
    assert rv.get_json()['success'] is False


@pytest.mark.parametrize('body', [['x'], '#2111', 2111])
def test_lookup_non_object_body_is_rejected(client, commerce_client, body):
    rv = client.post('/lookup', json=body)
    assert rv.status_code == 400
    assert rv.get_json() == {'success': False, 'message': 'Order number and email are required'}
    commerce_client.list_orders.assert_not_called()
