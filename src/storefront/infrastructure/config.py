"""Runtime settings, read from the environment or a ``.env`` file."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from decouple import config

# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    log_level: str
    log_json: bool
    cart_clear_policy: str
    ticket_code_max_attempts: int
    order_number_max_attempts: int
    shipping_cost: Decimal
    delivery_days: int
    notify_workers: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    smtp_use_tls: bool

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host)


def load_settings() -> Settings:
    return Settings(
        data_dir=Path(config("STOREFRONT_DATA_DIR", default=str(_DEFAULT_DATA_DIR))),
        log_level=config("STOREFRONT_LOG_LEVEL", default="INFO").upper(),
        log_json=config("STOREFRONT_LOG_JSON", default=False, cast=bool),
        cart_clear_policy=config("STOREFRONT_CART_CLEAR_POLICY", default="clear_all"),
        ticket_code_max_attempts=config("STOREFRONT_TICKET_CODE_MAX_ATTEMPTS", default=5, cast=int),
        order_number_max_attempts=config("STOREFRONT_ORDER_NUMBER_MAX_ATTEMPTS", default=5, cast=int),
        shipping_cost=config("STOREFRONT_SHIPPING_COST", default="0", cast=Decimal),
        delivery_days=config("STOREFRONT_DELIVERY_DAYS", default=3, cast=int),
        notify_workers=config("STOREFRONT_NOTIFY_WORKERS", default=2, cast=int),
        smtp_host=config("SMTP_HOST", default=""),
        smtp_port=config("SMTP_PORT", default=587, cast=int),
        smtp_user=config("SMTP_USER", default=""),
        smtp_password=config("SMTP_PASSWORD", default=""),
        smtp_from=config("SMTP_FROM", default="no-reply@storefront.local"),
        smtp_use_tls=config("SMTP_USE_TLS", default=True, cast=bool),
    )
