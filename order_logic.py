from datetime import datetime, timezone

from commerce_api import LOOKUP_FIELDS
from helpers.errors import OrderTrackerError, UpstreamError
from helpers.logger import Logger
from models import StatusResult


logger = Logger().get_logger()

ZIP_AND_GO_KEYWORDS = ('zip', 'go')

# (upper bound exclusive, stage, message, stage start day)
ZIP_AND_GO_TIMELINE = [
    (5, 'production', 'In Production', 0),
    (10, 'stitching', 'In Stitching', 5),
    (15, 'finishing', 'Finishing & Packing', 10),
]
ZIP_AND_GO_DISPATCH_DAY = 15

STANDARD_MESSAGES = {
    'fulfilled': 'Order Fulfilled',
    'partial': 'Partially Fulfilled',
    'processing': 'Processing Order',
    'pending': 'Payment Pending',
    'received': 'Order Received',
}


def normalize_order_number(order_number):
    """
    Strips whitespace and one leading '#', so "#2111" and "2111" give the same key.
    """
    order_number = str(order_number).strip()
    if order_number.startswith('#'):
        order_number = order_number[1:]
    return order_number


def normalize_email(email):
    return (email or '').strip().lower()


def days_since(created_at, now=None):
    """
    Whole days elapsed between created_at and now, floored (negative if created_at is ahead).
    """
    now = now or datetime.now(timezone.utc)
    return int((now - created_at).total_seconds() // 86400)


def email_matches(order, email):
    wanted = normalize_email(email)
    if not wanted:
        return False
    return wanted in (normalize_email(order.order_email), normalize_email(order.customer_email))


def fetch_candidates(client, order_number):
    """
    Looks orders up by display name, falling back to a fetch by numeric ID.
    """
    orders = client.list_orders(name=order_number, status='any', limit=50, fields=LOOKUP_FIELDS)
    logger.info(f"Found {len(orders)} order(s) named {order_number}")

    if not orders and order_number.isascii() and order_number.isdigit():
        logger.info(f"No orders named {order_number}, trying lookup by ID")
        try:
            orders = [client.get_order(order_number)]
        except UpstreamError as e:
            if e.status_code != 404:
                raise
            logger.info(f"No order with ID {order_number}")
            orders = []
    return orders


def select_order(candidates, email, allow_emailless_match=True):
    """
    Picks the first candidate whose order or customer email equals ``email``.

    When nothing matches and a candidate has no email on file at all, that
    candidate is returned if ``allow_emailless_match`` is set. This lets anyone
    holding the order number see the order, so every use is logged.
    """
    for order in candidates:
        if email_matches(order, email):
            return order

    if candidates and allow_emailless_match:
        for order in candidates:
            if not order.has_email:
                logger.warning(f"Order {order.name} has no email on file; returning it on order number alone")
                return order
    return None


def find_matching_order(client, order_number, email, allow_emailless_match=True):
    """
    Resolves a single order for an order number and email, or returns None.
    """
    order_number = normalize_order_number(order_number)
    candidates = fetch_candidates(client, order_number)
    order = select_order(candidates, email, allow_emailless_match)
    logger.info(f"Matching order for {order_number}: {'found' if order else 'not found'}")
    return order


def contains_keywords(text):
    text = (text or '').lower()
    return all(keyword in text for keyword in ZIP_AND_GO_KEYWORDS)


def _product_ids(order):
    seen = []
    for item in order.line_items:
        if item.product_id and item.product_id not in seen:
            seen.append(item.product_id)
    return seen


def _product_matches(client, product_id):
    try:
        product = client.get_product(product_id)
    except OrderTrackerError as e:
        logger.warning(f"Could not fetch product {product_id}: {e}")
        return False
    if contains_keywords(product.get('product_type')):
        logger.info(f"Product {product_id} is Zip & GO by product type")
        return True
    if contains_keywords(product.get('title')):
        logger.info(f"Product {product_id} is Zip & GO by product title")
        return True
    return False


def _collections_match(client, product_id):
    try:
        collections = client.get_product_collections(product_id)
    except OrderTrackerError as e:
        logger.warning(f"Could not fetch collections for product {product_id}: {e}")
        return False
    for collection in collections:
        if contains_keywords(collection.get('title')):
            logger.info(f"Product {product_id} is in Zip & GO collection {collection.get('title')!r}")
            return True
    return False


def is_zip_and_go_order(client, order):
    """
    Decides whether an order belongs to the Zip & GO line.

    Checks, in order, line item names/titles, then each product's type and
    title, then each product's collections. API failures count as "no".
    """
    for item in order.line_items:
        if contains_keywords(item.name) or contains_keywords(item.title):
            logger.info(f"Found Zip & GO in line item {item.name or item.title!r}")
            return True

    product_ids = _product_ids(order)
    for product_id in product_ids:
        if _product_matches(client, product_id):
            return True

    for product_id in product_ids:
        if _collections_match(client, product_id):
            return True

    return False


def derive_status(order, days, is_zip_and_go):
    """
    Maps an order and its age in days to a StatusResult.

    Zip & GO orders follow the production timeline; every other order
    mirrors the platform's fulfillment and financial status.
    """
    if is_zip_and_go:
        if days < 0:
            return StatusResult('received', STANDARD_MESSAGES['received'], 0)
        for upper, stage, message, start in ZIP_AND_GO_TIMELINE:
            if days < upper:
                return StatusResult(stage, message, days - start)
        return StatusResult('dispatched', 'Dispatched', days - ZIP_AND_GO_DISPATCH_DAY)

    if order.fulfillment_status == 'fulfilled':
        stage = 'fulfilled'
    elif order.fulfillment_status == 'partial':
        stage = 'partial'
    elif order.financial_status == 'paid':
        stage = 'processing'
    elif order.financial_status == 'pending':
        stage = 'pending'
    else:
        stage = 'received'
    return StatusResult(stage, STANDARD_MESSAGES[stage], days)


def format_order(order, status, is_zip_and_go):
    """
    Builds the JSON body returned by the lookup endpoint.
    """
    return {
        'id': order.id,
        'name': order.name,
        'email': order.contact_email,
        'total_price': order.total_price,
        'currency': order.currency,
        'created_at': order.created_at.isoformat(),
        'financial_status': order.financial_status,
        'fulfillment_status': order.fulfillment_status,
        'custom_status': status.to_dict(),
        'is_zip_and_go': is_zip_and_go,
        'line_items': [
            {
                'id': item.id,
                'name': item.name,
                'quantity': item.quantity,
                'price': item.price,
                'variant_title': item.variant_title,
                'image': item.image,
            }
            for item in order.line_items
        ],
        'shipping_address': order.shipping_address.to_dict() if order.shipping_address else None,
        'fulfillments': [fulfillment.raw for fulfillment in order.fulfillments],
    }


def lookup_order(client, order_number, email, allow_emailless_match=True, now=None):
    """
    Full lookup: match, classify, derive status. Returns the formatted order or None.
    """
    order = find_matching_order(client, order_number, email, allow_emailless_match)
    if order is None:
        return None

    days = days_since(order.created_at, now)
    zip_and_go = is_zip_and_go_order(client, order)
    status = derive_status(order, days, zip_and_go)
    logger.info(f"Order {order.name}: {days} day(s) old, zip_and_go={zip_and_go}, stage={status.stage}")
    return format_order(order, status, zip_and_go)
