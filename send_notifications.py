"""
Triggers the reminder email run. Meant for cron or another external scheduler:

    CRON_API_KEY=... NOTIFY_URL=https://example.com/notify python send_notifications.py

Exits with status 1 if the run could not be completed.
"""
import os
import sys

import requests

from helpers.logger import Logger


logger = Logger().get_logger()

DEFAULT_NOTIFY_URL = 'http://localhost:5001/notify'


def send_notifications(api_url, api_key):
    """
    Calls the notify endpoint and logs the returned statistics.

    Returns:
        bool: True if the server processed the run.
    """
    logger.info(f"Starting email notification process via {api_url}")
    try:
        response = requests.post(api_url, json={'apiKey': api_key}, timeout=300)
    except requests.exceptions.RequestException as e:
        logger.error(f"Error sending notifications: {e}")
        return False

    try:
        result = response.json()
    except ValueError:
        result = {}

    if not response.ok:
        logger.error(f"Failed to send notifications ({response.status_code}): {result.get('error', response.text)}")
        return False

    stats = result.get('stats', {})
    logger.info('Email notifications processed')
    logger.info(f"  Total unfulfilled orders: {stats.get('totalOrders')}")
    logger.info(f"  Orders eligible for notification: {stats.get('eligibleOrders')}")
    logger.info(f"  Emails sent: {stats.get('emailsSent')}")
    logger.info(f"  Errors: {stats.get('errors')}")
    for error in result.get('errors') or []:
        logger.warning(f"  Order {error.get('order')} ({error.get('email')}): {error.get('error')}")
    return True


def main():
    api_key = os.getenv('CRON_API_KEY')
    if not api_key:
        logger.error('CRON_API_KEY environment variable is required')
        return 1
    api_url = os.getenv('NOTIFY_URL', DEFAULT_NOTIFY_URL)
    return 0 if send_notifications(api_url, api_key) else 1


if __name__ == '__main__':
    sys.exit(main())
