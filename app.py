import hmac

from flask import Flask, render_template, request, jsonify

from commerce_api import CommerceClient
from config import load_settings
from helpers.errors import (
    AuthorizationError,
    ConfigurationError,
    TransportError,
    UpstreamError,
    ValidationError,
)
from helpers.logger import Logger
from notifier import SmtpMailer, run_notifications
from order_logic import lookup_order


# Global singleton instance
logger = Logger().get_logger()

# Initialize Flask App
app = Flask(__name__)
app.config['SETTINGS'] = load_settings()
Logger().set_level(app.config['SETTINGS'].log_level)

NOT_FOUND_MESSAGE = 'Order not found. Please check your order number and email address.'
CONFIG_ERROR_MESSAGE = 'Server configuration error'
UPSTREAM_ERROR_MESSAGE = 'Unable to connect to order system'
GENERIC_ERROR_MESSAGE = 'An error occurred while searching for your order. Please try again later.'


def get_settings():
    return app.config['SETTINGS']


@app.after_request
def add_cors_headers(response):
    if request.path == '/lookup':
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
    return response


@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({'success': False, 'message': 'Method not allowed'}), 405


@app.route('/')
def index():
    """
    Serves the order lookup page.
    """
    return render_template('index.html')


def _required_fields(payload):
    if not isinstance(payload, dict):
        raise ValidationError('Order number and email are required')
    order_number = str(payload.get('orderNumber') or '').strip()
    email = str(payload.get('email') or '').strip()
    if not order_number or not email:
        raise ValidationError('Order number and email are required')
    return order_number, email


@app.route('/lookup', methods=['POST', 'OPTIONS'])
def lookup():
    """
    Looks up an order by number and email and returns its current status.
    "Not found" is a normal 200 answer with success set to false.
    """
    if request.method == 'OPTIONS':
        return '', 200

    try:
        order_number, email = _required_fields(request.get_json(silent=True))
        settings = get_settings()
        logger.info(f"Lookup request for order {order_number}")

        client = CommerceClient(settings)
        order = lookup_order(client, order_number, email,
                             allow_emailless_match=settings.allow_emailless_match)

        if order is None:
            return jsonify({'success': False, 'message': NOT_FOUND_MESSAGE})
        return jsonify({'success': True, 'order': order})

    except ValidationError as e:
        return jsonify({'success': False, 'message': str(e)}), 400
    except ConfigurationError as e:
        logger.error(f"Configuration error in /lookup: {e}")
        return jsonify({'success': False, 'message': CONFIG_ERROR_MESSAGE}), 500
    except UpstreamError as e:
        logger.error(f"Commerce API error in /lookup: {e} body={e.body}")
        return jsonify({'success': False, 'message': UPSTREAM_ERROR_MESSAGE}), 500
    except TransportError as e:
        logger.error(f"Commerce API unreachable in /lookup: {e}")
        return jsonify({'success': False, 'message': GENERIC_ERROR_MESSAGE}), 500
    except Exception as e:
        logger.error(f"Error in /lookup endpoint: {e}", exc_info=True)
        return jsonify({'success': False, 'message': GENERIC_ERROR_MESSAGE}), 500


def _check_api_key(api_key, secret):
    if not secret:
        raise ConfigurationError('CRON_API_KEY is not set')
    if not api_key or not hmac.compare_digest(str(api_key).encode('utf-8'), secret.encode('utf-8')):
        raise AuthorizationError('Unauthorized')


@app.route('/notify', methods=['POST'])
def notify():
    """
    Sends reminder emails for unfulfilled orders. Called by the scheduled batch job.
    """
    settings = get_settings()
    payload = request.get_json(silent=True)
    api_key = payload.get('apiKey') if isinstance(payload, dict) else None

    try:
        _check_api_key(api_key, settings.notify_secret)
    except AuthorizationError:
        logger.warning('Rejected /notify call with a bad API key')
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401
    except ConfigurationError as e:
        logger.error(f"Configuration error in /notify: {e}")
        return jsonify({'success': False, 'error': CONFIG_ERROR_MESSAGE}), 500

    try:
        client = CommerceClient(settings)
        mailer = SmtpMailer(settings.email)
        result = run_notifications(client, mailer, settings.tracking_url, settings.store_name)
    except ConfigurationError as e:
        logger.error(f"Configuration error in /notify: {e}")
        return jsonify({'success': False, 'error': CONFIG_ERROR_MESSAGE}), 500
    except (UpstreamError, TransportError) as e:
        logger.error(f"Commerce API error in /notify: {e}")
        return jsonify({'success': False, 'error': UPSTREAM_ERROR_MESSAGE}), 500
    except Exception as e:
        logger.error(f"Error in /notify endpoint: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Email notification run failed'}), 500

    body = {
        'success': True,
        'message': 'Email notifications processed',
        'stats': result['stats'],
    }
    if result['errors']:
        body['errors'] = result['errors']
    return jsonify(body)


if __name__ == '__main__':
    """
    Runs the Flask application in debug mode.
    """
    app.run(host='0.0.0.0', port=5001, debug=True)
