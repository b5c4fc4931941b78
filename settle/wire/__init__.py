"""
Wire — expose the checkout saga over HTTP.

    from settle.wire import create_app

    app = create_app(coordinator)
    # POST /checkout, POST /orders/{order_id}/remediate
"""

from settle.wire._app import create_app, add_routes, from_config, app_factory
from settle.wire._codecs import (
    CheckoutIn,
    CheckoutCommand,
    RemediateIn,
    RemediateCommand,
    OutcomeOut,
    StepRecordOut,
)

__all__ = (
    "create_app",
    "add_routes",
    "from_config",
    "app_factory",
    "CheckoutIn",
    "CheckoutCommand",
    "RemediateIn",
    "RemediateCommand",
    "OutcomeOut",
    "StepRecordOut",
)
