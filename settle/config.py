"""
Configuration — frozen settings objects, all optional with sane defaults.

    cfg = SettleConfig.from_env()          # SETTLE_* variables
    cfg = SettleConfig(backend=BackendConfig(base_url="http://pos.local/api"))
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

ENV_PREFIX = "SETTLE_"


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """
    Commerce backend endpoints.

    order_create_timeout bounds order creation only; every other call uses
    request_timeout (None = wait as long as the caller lets it).
    """

    base_url: str = "http://localhost:3000/api"
    orders_path: str = "/orders"
    award_points_path: str = "/orders/award-points-native"
    products_path: str = "/proxy/woocommerce/products"
    inventory_path: str = "/proxy/flora-im/inventory"
    order_create_timeout: float = 30.0
    request_timeout: float | None = None


@dataclass(frozen=True, slots=True)
class StoreDefaults:
    """Billing/shipping snapshot values used when the customer has none."""

    country: str = "US"
    state: str = "NC"
    city: str = "Charlotte"
    postcode: str = "28105"
    currency: str = "USD"
    guest_email_domain: str = "floradistro.com"
    created_via: str = "posv1"
    location_name: str = "Default"


@dataclass(frozen=True, slots=True)
class MappingConfig:
    ttl: float = 300.0
    max_size: int = 1000
    search_limit: int = 5


@dataclass(frozen=True, slots=True)
class SettleConfig:
    backend: BackendConfig = field(default_factory=BackendConfig)
    store: StoreDefaults = field(default_factory=StoreDefaults)
    mapping: MappingConfig = field(default_factory=MappingConfig)
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SettleConfig:
        """
        Read SETTLE_* variables; anything unset keeps its default.

        SETTLE_BASE_URL, SETTLE_ORDER_CREATE_TIMEOUT, SETTLE_REQUEST_TIMEOUT,
        SETTLE_STORE_CITY, SETTLE_STORE_STATE, SETTLE_STORE_POSTCODE,
        SETTLE_GUEST_EMAIL_DOMAIN, SETTLE_LOCATION_NAME, SETTLE_PRODUCTS_PATH,
        SETTLE_INVENTORY_PATH, SETTLE_MAPPING_TTL, SETTLE_LOG_LEVEL,
        SETTLE_LOG_JSON.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        b, s, m = BackendConfig(), StoreDefaults(), MappingConfig()
        backend = replace(
            b,
            base_url=get("BASE_URL") or b.base_url,
            products_path=get("PRODUCTS_PATH") or b.products_path,
            inventory_path=get("INVENTORY_PATH") or b.inventory_path,
            order_create_timeout=_float(get("ORDER_CREATE_TIMEOUT")) or b.order_create_timeout,
            request_timeout=_float(get("REQUEST_TIMEOUT")),
        )
        store = replace(
            s,
            state=get("STORE_STATE") or s.state,
            city=get("STORE_CITY") or s.city,
            postcode=get("STORE_POSTCODE") or s.postcode,
            guest_email_domain=get("GUEST_EMAIL_DOMAIN") or s.guest_email_domain,
            location_name=get("LOCATION_NAME") or s.location_name,
        )
        mapping = replace(m, ttl=_float(get("MAPPING_TTL")) or m.ttl)
        return cls(
            backend=backend,
            store=store,
            mapping=mapping,
            log_level=(get("LOG_LEVEL") or "INFO").upper(),
            log_json=(get("LOG_JSON") or "").lower() in {"1", "true", "yes"},
        )


def _float(raw: str | None) -> float | None:
    if raw is None or raw == "":
        return None
    return float(raw)


__all__ = (
    "BackendConfig",
    "StoreDefaults",
    "MappingConfig",
    "SettleConfig",
)
