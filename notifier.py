"""
Reminder emails for unfulfilled orders.

Run through the ``/notify`` endpoint by an external scheduler. Every order
that is a multiple of three days old (from day 3 on) gets a status email.
"""
import smtplib
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage

from flask import render_template

from helpers.errors import ConfigurationError
from helpers.logger import Logger
from order_logic import days_since


logger = Logger().get_logger()

NOTIFICATION_CADENCE_DAYS = 3
NOTIFICATION_WINDOW_DAYS = 30
SCAN_FIELDS = 'id,name,email,customer,created_at,financial_status,fulfillment_status,line_items'

# (inclusive upper bound in days, message, badge colour)
EMAIL_STATUS_TABLE = [
    (5, 'Your order has been received and is being prepared for production.', '#10B981'),
    (10, 'Your order is currently in production. Our skilled artisans are working on your beautiful pieces.',
     '#F59E0B'),
    (15, 'Your order is in the stitching phase. Every detail is being carefully crafted.', '#8B5CF6'),
    (20, 'Your order is in the finishing and packing stage. Almost ready!', '#EF4444'),
]
EMAIL_FINAL_STATUS = ('Your order is in the final stages and will be dispatched soon.', '#DC2626')


def is_eligible(order, days):
    """
    True when the order is at least 3 days old, on a 3-day boundary, and has an email.
    """
    return (days >= NOTIFICATION_CADENCE_DAYS
            and days % NOTIFICATION_CADENCE_DAYS == 0
            and order.has_email)


def email_status(days):
    """
    Returns (message, colour) for the status badge in the reminder email.
    """
    for upper, message, colour in EMAIL_STATUS_TABLE:
        if days <= upper:
            return message, colour
    return EMAIL_FINAL_STATUS


def render_order_email(order, days, tracking_url, store_name):
    """
    Renders the HTML reminder email. Needs a Flask app context.
    """
    message, colour = email_status(days)
    return render_template(
        'order_update_email.html',
        order=order,
        order_date=order.created_at.strftime('%d %b %Y'),
        days=days,
        status_message=message,
        status_color=colour,
        tracking_url=tracking_url,
        store_name=store_name,
    )


class SmtpMailer:
    """
    Sends HTML email through an SMTP server with STARTTLS and login.
    """

    def __init__(self, email_config):
        if not email_config.user or not email_config.password:
            raise ConfigurationError('Missing email credentials: EMAIL_USER, EMAIL_PASSWORD')
        self.config = email_config

    def send(self, to, subject, html):
        message = EmailMessage()
        message['From'] = self.config.from_address
        message['To'] = to
        message['Subject'] = subject
        message.set_content('This message requires an HTML capable email client.')
        message.add_alternative(html, subtype='html')

        with smtplib.SMTP(self.config.host, self.config.port, timeout=30) as smtp:
            smtp.starttls()
            smtp.login(self.config.user, self.config.password)
            smtp.send_message(message)


def run_notifications(client, mailer, tracking_url, store_name, now=None):
    """
    Emails every eligible unfulfilled order from the last 30 days.

    A failed send is recorded and the batch moves on to the next order.

    Returns:
        dict: ``{'stats': {...}, 'errors': [...]}``
    """
    now = now or datetime.now(timezone.utc)
    created_at_min = (now - timedelta(days=NOTIFICATION_WINDOW_DAYS)).isoformat()

    orders = client.list_orders(
        status='any',
        fulfillment_status='unfulfilled',
        created_at_min=created_at_min,
        limit=250,
        fields=SCAN_FIELDS,
    )
    logger.info(f"Found {len(orders)} unfulfilled orders since {created_at_min}")

    eligible = []
    for order in orders:
        days = days_since(order.created_at, now)
        if is_eligible(order, days):
            eligible.append((order, days))
    logger.info(f"{len(eligible)} orders eligible for notification")

    emails_sent = 0
    errors = []
    for order, days in eligible:
        recipient = order.contact_email
        try:
            html = render_order_email(order, days, tracking_url, store_name)
            mailer.send(recipient, f"Order Update: {order.name} - {store_name}", html)
            emails_sent += 1
            logger.info(f"Email sent for order {order.name} to {recipient}")
        except Exception as e:
            logger.error(f"Failed to send email for order {order.name}: {e}", exc_info=True)
            errors.append({'order': order.name, 'email': recipient, 'error': str(e)})

    return {
        'stats': {
            'totalOrders': len(orders),
            'eligibleOrders': len(eligible),
            'emailsSent': emails_sent,
            'errors': len(errors),
        },
        'errors': errors,
    }
