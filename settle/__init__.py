"""
settle — POS checkout completion saga.

Turns a paid cart into a created, stock-adjusted, completed order against a
commerce backend that has no multi-step transaction, and tells the operator
exactly where the order stands when a step fails.

    from settle import saga as S, backend as B
    from settle.mapping import ProductMappingResolver

    client = B.CommerceClient(http, cfg.backend)
    coordinator = S.OrderSagaCoordinator(
        client,
        B.HttpInventoryService(http, cfg.backend),
        ProductMappingResolver(client),
    )
    outcome = await coordinator.run(cart, customer, payment, location_id)
"""

from settle._types import (
    # kungfu
    Result,
    Ok,
    Error,
    LazyCoroResult,
    # Money
    to_money,
    round_money,
    format_money,
    # Cart
    ConversionRatio,
    PricingTier,
    CartLine,
    # Parties
    Customer,
    Employee,
    TaxRate,
    is_guest,
    # Payment
    PaymentLeg,
    PaymentInfo,
)
from settle.config import SettleConfig, BackendConfig, StoreDefaults, MappingConfig
from settle.log import configure_logging
from settle.saga import (
    OrderSagaCoordinator,
    OrderOutcome,
    Completed,
    CreatedButIncomplete,
    Rejected,
    FailedStep,
    operator_message,
    allowed_actions,
)

# Subpackages
from settle import pricing, cache, backend, mapping, saga

__version__ = "0.1.0"

__all__ = (
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    "to_money",
    "round_money",
    "format_money",
    "ConversionRatio",
    "PricingTier",
    "CartLine",
    "Customer",
    "Employee",
    "TaxRate",
    "is_guest",
    "PaymentLeg",
    "PaymentInfo",
    "SettleConfig",
    "BackendConfig",
    "StoreDefaults",
    "MappingConfig",
    "configure_logging",
    "OrderSagaCoordinator",
    "OrderOutcome",
    "Completed",
    "CreatedButIncomplete",
    "Rejected",
    "FailedStep",
    "operator_message",
    "allowed_actions",
    "pricing",
    "cache",
    "backend",
    "mapping",
    "saga",
)
