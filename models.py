"""
Order records as returned by the commerce platform's Admin REST API.

These are read-only mirrors of upstream state. They are rebuilt from the API
on every request and never written back.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import List, Optional


def parse_timestamp(value: str) -> datetime:
    """
    Parses an ISO-8601 timestamp such as ``2024-03-01T10:15:00-05:00``.
    Naive values are taken to be UTC.
    """
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _clean_email(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class Customer:
    id: Optional[int] = None
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Customer':
        return cls(id=data.get('id'), email=data.get('email'))


@dataclass
class LineItem:
    name: str = ''
    title: str = ''
    quantity: int = 0
    price: Optional[str] = None
    variant_title: Optional[str] = None
    product_id: Optional[int] = None
    image: Optional[object] = None
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'LineItem':
        return cls(
            id=data.get('id'),
            name=data.get('name') or '',
            title=data.get('title') or '',
            quantity=data.get('quantity') or 0,
            price=data.get('price'),
            variant_title=data.get('variant_title'),
            product_id=data.get('product_id'),
            image=data.get('image'),
        )


@dataclass
class ShippingAddress:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'ShippingAddress':
        return cls(**{name: data.get(name) for name in cls.__dataclass_fields__})

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Fulfillment:
    status: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_company: Optional[str] = None
    tracking_url: Optional[str] = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> 'Fulfillment':
        return cls(
            status=data.get('status'),
            tracking_number=data.get('tracking_number'),
            tracking_company=data.get('tracking_company'),
            tracking_url=data.get('tracking_url'),
            raw=dict(data),
        )


@dataclass
class Order:
    id: int
    name: str
    created_at: datetime
    email: Optional[str] = None
    customer: Optional[Customer] = None
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    total_price: Optional[str] = None
    currency: Optional[str] = None
    line_items: List[LineItem] = field(default_factory=list)
    shipping_address: Optional[ShippingAddress] = None
    fulfillments: List[Fulfillment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'Order':
        customer = data.get('customer')
        shipping = data.get('shipping_address')
        return cls(
            id=data.get('id'),
            name=data.get('name') or '',
            created_at=parse_timestamp(data['created_at']),
            email=data.get('email'),
            customer=Customer.from_dict(customer) if customer else None,
            financial_status=data.get('financial_status'),
            fulfillment_status=data.get('fulfillment_status'),
            total_price=data.get('total_price'),
            currency=data.get('currency'),
            line_items=[LineItem.from_dict(item) for item in data.get('line_items') or []],
            shipping_address=ShippingAddress.from_dict(shipping) if shipping else None,
            fulfillments=[Fulfillment.from_dict(f) for f in data.get('fulfillments') or []],
        )

    @property
    def order_email(self) -> Optional[str]:
        return _clean_email(self.email)

    @property
    def customer_email(self) -> Optional[str]:
        return _clean_email(self.customer.email) if self.customer else None

    @property
    def contact_email(self) -> Optional[str]:
        """The order email, else the customer's email, else None."""
        return self.order_email or self.customer_email

    @property
    def has_email(self) -> bool:
        return self.contact_email is not None


@dataclass(frozen=True)
class StatusResult:
    stage: str
    message: str
    days: int

    def to_dict(self) -> dict:
        return {'stage': self.stage, 'message': self.message, 'days': self.days}
