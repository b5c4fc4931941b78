"""
Commerce backend client — orders, completion, points, catalog search.

Methods raise on failure (httpx.HTTPError for transport, BackendRejected for
a non-2xx status or a body that breaks the contract); the saga lifts them
into Result at the step boundary.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

import httpx
import structlog

from settle.config import BackendConfig

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors & Results
# ═══════════════════════════════════════════════════════════════════════════════


class BackendRejected(Exception):
    """Backend answered, but not with what the contract promises."""

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


@dataclass(frozen=True, slots=True)
class PointsAward:
    success: bool
    points: int
    message: str = ""


@dataclass(frozen=True, slots=True)
class CatalogProduct:
    id: int
    name: str


# ═══════════════════════════════════════════════════════════════════════════════
# Protocol — what the saga needs from the backend
# ═══════════════════════════════════════════════════════════════════════════════


class CommerceBackend(Protocol):
    async def create_order(self, payload: Mapping[str, Any]) -> int:
        """Create the order; returns its id."""
        ...

    async def complete_order(
        self, order_id: int, date_paid: datetime, date_completed: datetime
    ) -> None:
        ...

    async def award_points(self, order_id: int, customer_id: int) -> PointsAward:
        ...


class Catalog(Protocol):
    async def search_products(self, name: str, limit: int) -> list[CatalogProduct]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# CommerceClient — httpx implementation
# ═══════════════════════════════════════════════════════════════════════════════


class CommerceClient:
    """
    Talks to the commerce proxy over HTTP.

    Example:
        async with httpx.AsyncClient(base_url=cfg.base_url) as http:
            client = CommerceClient(http, cfg)
            order_id = await client.create_order(request.to_wire())
    """

    def __init__(self, http: httpx.AsyncClient, config: BackendConfig | None = None) -> None:
        self._http = http
        self._config = config or BackendConfig()

    @classmethod
    def connect(cls, config: BackendConfig) -> CommerceClient:
        http = httpx.AsyncClient(base_url=config.base_url, timeout=config.request_timeout)
        return cls(http, config)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def create_order(self, payload: Mapping[str, Any]) -> int:
        response = await self._http.post(
            self._config.orders_path,
            json=dict(payload),
            timeout=self._config.order_create_timeout,
        )
        body = _json_or_rejected(response, "order creation")
        if not isinstance(body, dict) or body.get("success") is not True:
            raise BackendRejected("order creation did not report success", response.status_code, response.text)
        data = body.get("data")
        order_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(order_id, int) or isinstance(order_id, bool) or order_id <= 0:
            raise BackendRejected("order creation returned no order id", response.status_code, response.text)
        logger.debug("backend.order_created", order_id=order_id)
        return order_id

    async def complete_order(
        self, order_id: int, date_paid: datetime, date_completed: datetime
    ) -> None:
        response = await self._http.put(
            f"{self._config.orders_path}/{order_id}",
            json={
                "status": "completed",
                "date_paid": date_paid.isoformat(),
                "date_completed": date_completed.isoformat(),
            },
        )
        _raise_for_status(response, "order completion")

    async def award_points(self, order_id: int, customer_id: int) -> PointsAward:
        response = await self._http.post(
            self._config.award_points_path,
            json={"orderId": order_id, "customerId": customer_id},
        )
        body = _json_or_rejected(response, "points award")
        if not isinstance(body, dict):
            raise BackendRejected("points award returned a non-object body", response.status_code, response.text)
        logger.debug("backend.points_response", order_id=order_id, body=body)
        points = body.get("pointsAwarded") or 0
        return PointsAward(
            success=body.get("success") is True,
            points=int(points) if isinstance(points, (int, float)) else 0,
            message=str(body.get("message") or body.get("error") or ""),
        )

    async def search_products(self, name: str, limit: int = 5) -> list[CatalogProduct]:
        response = await self._http.get(
            self._config.products_path,
            params={"search": name, "per_page": limit, "status": "publish"},
        )
        body = _json_or_rejected(response, "product search")
        if not isinstance(body, list):
            raise BackendRejected("product search returned a non-list body", response.status_code, response.text)
        return [
            CatalogProduct(id=int(p["id"]), name=str(p.get("name", "")))
            for p in body
            if isinstance(p, dict) and "id" in p
        ]


# ═══════════════════════════════════════════════════════════════════════════════
# Response helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _raise_for_status(response: httpx.Response, what: str) -> None:
    if response.is_success:
        return
    message = f"{what} failed ({response.status_code})"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and (body.get("error") or body.get("message")):
        message = f"{message}: {body.get('error') or body.get('message')}"
    raise BackendRejected(message, response.status_code, response.text[:200])


def _json_or_rejected(response: httpx.Response, what: str) -> Any:
    _raise_for_status(response, what)
    try:
        return response.json()
    except ValueError as exc:
        raise BackendRejected(f"{what} returned invalid JSON", response.status_code, response.text[:200]) from exc


__all__ = (
    "BackendRejected",
    "PointsAward",
    "CatalogProduct",
    "CommerceBackend",
    "Catalog",
    "CommerceClient",
)
