import os
from dataclasses import dataclass, field
from typing import Optional

from helpers.errors import ConfigurationError


DEFAULT_API_VERSION = '2023-10'
DEFAULT_TRACKING_URL = 'http://localhost:5001/'
DEFAULT_STORE_NAME = 'Kruthika Designer Studio'


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class EmailConfig:
    """SMTP credentials for the reminder emails."""
    host: str = 'smtp.gmail.com'
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None

    @property
    def from_address(self) -> Optional[str]:
        return self.sender or self.user


@dataclass
class Settings:
    """
    Explicit configuration handed to every component at construction.
    Built from the environment by ``load_settings``.
    """
    shop_domain: Optional[str] = None
    access_token: Optional[str] = None
    notify_secret: Optional[str] = None
    tracking_url: str = DEFAULT_TRACKING_URL
    store_name: str = DEFAULT_STORE_NAME
    api_version: str = DEFAULT_API_VERSION
    allow_emailless_match: bool = True
    request_timeout: float = 20
    log_level: str = 'INFO'
    email: EmailConfig = field(default_factory=EmailConfig)

    def require_commerce_credentials(self):
        """
        Raises ConfigurationError unless the shop domain and access token are set.
        """
        missing = [name for name, value in (('SHOP_DOMAIN', self.shop_domain),
                                            ('SHOPIFY_ACCESS_TOKEN', self.access_token)) if not value]
        if missing:
            raise ConfigurationError(f"Missing commerce credentials: {', '.join(missing)}")


def load_settings() -> Settings:
    """
    Reads the settings from environment variables.
    """
    return Settings(
        shop_domain=os.getenv('SHOP_DOMAIN'),
        access_token=os.getenv('SHOPIFY_ACCESS_TOKEN'),
        notify_secret=os.getenv('CRON_API_KEY'),
        tracking_url=os.getenv('TRACKING_URL', DEFAULT_TRACKING_URL),
        store_name=os.getenv('STORE_NAME', DEFAULT_STORE_NAME),
        api_version=os.getenv('SHOPIFY_API_VERSION', DEFAULT_API_VERSION),
        allow_emailless_match=_env_flag('ALLOW_EMAILLESS_LOOKUP', True),
        request_timeout=float(os.getenv('SHOPIFY_TIMEOUT', '20')),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
        email=EmailConfig(
            host=os.getenv('EMAIL_HOST', 'smtp.gmail.com'),
            port=int(os.getenv('EMAIL_PORT', '587')),
            user=os.getenv('EMAIL_USER'),
            password=os.getenv('EMAIL_PASSWORD'),
            sender=os.getenv('EMAIL_FROM'),
        ),
    )
