"""
FastAPI application over the checkout saga.

Every outcome is a 200; OutcomeOut.kind carries the meaning. Malformed
bodies still get FastAPI's 422.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import fastapi
import httpx
import structlog

from settle.backend import CommerceClient, HttpInventoryService
from settle.config import SettleConfig
from settle.log import configure_logging
from settle.mapping import ProductMappingResolver
from settle.saga import OrderSagaCoordinator
from settle.wire._codecs import CheckoutIn, OutcomeOut, RemediateIn

logger = structlog.get_logger(__name__)


def create_app(coordinator: OrderSagaCoordinator) -> fastapi.FastAPI:
    app = fastapi.FastAPI(title="settle")
    add_routes(app, coordinator)
    return app


def add_routes(app: fastapi.FastAPI, coordinator: OrderSagaCoordinator) -> None:
    @app.post("/checkout", response_model=OutcomeOut)
    async def checkout(req: CheckoutIn) -> OutcomeOut:
        cmd = req.to_domain()
        outcome = await coordinator.run(
            cmd.cart,
            cmd.customer,
            cmd.payment,
            cmd.location_id,
            tax=cmd.tax,
            employee=cmd.employee,
        )
        return OutcomeOut.from_domain(outcome)

    @app.post("/orders/{order_id}/remediate", response_model=OutcomeOut)
    async def remediate(order_id: int, req: RemediateIn) -> OutcomeOut:
        cmd = req.to_domain(order_id)
        outcome = await coordinator.remediate(
            cmd.incomplete,
            cmd.cart,
            cmd.customer,
            cmd.location_id,
        )
        return OutcomeOut.from_domain(outcome)


def from_config(config: SettleConfig | None = None) -> fastapi.FastAPI:
    """
    Wire real collaborators from configuration.

    Example:
        app = from_config(SettleConfig.from_env())
        # uvicorn settle.wire:app_factory --factory
    """
    config = config or SettleConfig.from_env()
    configure_logging(config.log_level, json=config.log_json)

    http = httpx.AsyncClient(
        base_url=config.backend.base_url,
        timeout=config.backend.request_timeout,
    )
    client = CommerceClient(http, config.backend)
    coordinator = OrderSagaCoordinator(
        client,
        HttpInventoryService(http, config.backend),
        ProductMappingResolver(client, config.mapping),
        store=config.store,
        create_timeout=config.backend.order_create_timeout,
    )

    @asynccontextmanager
    async def lifespan(_: fastapi.FastAPI) -> AsyncIterator[None]:
        logger.info("settle.started", base_url=config.backend.base_url)
        yield
        await http.aclose()

    app = fastapi.FastAPI(title="settle", lifespan=lifespan)
    add_routes(app, coordinator)
    return app


def app_factory() -> fastapi.FastAPI:
    return from_config()


__all__ = ("create_app", "add_routes", "from_config", "app_factory")
