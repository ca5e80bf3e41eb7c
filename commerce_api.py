"""
Read-only client for the store's Admin REST API (orders, products, collections).
"""
import requests

from helpers.errors import TransportError, UpstreamError
from helpers.logger import Logger
from models import Order


logger = Logger().get_logger()

LOOKUP_FIELDS = ','.join([
    'id', 'name', 'email', 'customer', 'total_price', 'currency', 'created_at',
    'financial_status', 'fulfillment_status', 'line_items', 'shipping_address', 'fulfillments',
])


class CommerceClient:
    """
    One GET per call, no retries. Failures are raised to the caller as
    TransportError (network) or UpstreamError (non-2xx / bad body).
    """

    def __init__(self, settings, session=None):
        settings.require_commerce_credentials()
        self.base_url = f"https://{settings.shop_domain}/admin/api/{settings.api_version}"
        self.timeout = settings.request_timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'X-Shopify-Access-Token': settings.access_token,
            'Content-Type': 'application/json',
        })

    def _get(self, path: str, params: dict = None) -> dict:
        url = f"{self.base_url}/{path}"
        logger.debug(f"GET {url} params={params}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Commerce API request to {url} failed: {e}")
            raise TransportError(f"Could not reach commerce API: {e}") from e

        if not response.ok:
            logger.error(f"Commerce API error {response.status_code} for {url}: {response.text}")
            raise UpstreamError(response.status_code, response.text, url)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Commerce API returned invalid JSON for {url}: {e}")
            raise UpstreamError(response.status_code, response.text, url) from e

    def list_orders(self, **filters) -> list:
        """
        Lists orders matching the given query filters
        (name, status, fulfillment_status, created_at_min, limit, fields).
        """
        data = self._get('orders.json', params=filters)
        return [Order.from_dict(order) for order in data.get('orders') or []]

    def get_order(self, order_id) -> Order:
        path = f"orders/{order_id}.json"
        data = self._get(path)
        if not data.get('order'):
            raise UpstreamError(404, 'Response has no order', f"{self.base_url}/{path}")
        return Order.from_dict(data['order'])

    def get_product(self, product_id) -> dict:
        data = self._get(f"products/{product_id}.json")
        return data.get('product') or {}

    def get_product_collections(self, product_id) -> list:
        data = self._get(f"products/{product_id}/collections.json")
        return data.get('collections') or []
