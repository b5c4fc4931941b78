"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field

import httpx

from settle.config import BackendConfig

BASE_URL = "http://pos.example/api"


# Fake commerce backend behind httpx.MockTransport
@dataclass(slots=True)
class FakeCommerce:
    stock: dict[tuple[int, int], float] = field(default_factory=lambda: {
        (101, 5): 40.0,
        (202, 5): 12.0,
    })
    catalog: list[dict[str, object]] = field(default_factory=lambda: [
        {"id": 5101, "name": "Blue Dream"},
        {"id": 5202, "name": "Gelato Pre-Roll"},
    ])
    next_order_id: int = 9001
    fail_inventory_writes: bool = False
    fail_completion: bool = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        match request.method, path:
            case "POST", "/orders":
                order_id = self.next_order_id
                self.next_order_id += 1
                print(f"  ✓ Order #{order_id} created")
                return httpx.Response(201, json={"success": True, "data": {"id": order_id}})
            case "PUT", _ if path.startswith("/orders/"):
                if self.fail_completion:
                    print("  ✗ Completion refused")
                    return httpx.Response(502, json={"error": "upstream unavailable"})
                print(f"  ✓ {path} completed")
                return httpx.Response(200, json={"status": "completed"})
            case "POST", "/orders/award-points-native":
                body = json.loads(request.content)
                print(f"  ✓ Points for customer {body['customerId']}")
                return httpx.Response(200, json={"success": True, "pointsAwarded": 20})
            case "GET", "/proxy/woocommerce/products":
                term = request.url.params["search"].lower()
                found = [p for p in self.catalog if term in str(p["name"]).lower()]
                return httpx.Response(200, json=found)
            case "GET", "/proxy/flora-im/inventory":
                key = (int(request.url.params["product_id"]), int(request.url.params["location_id"]))
                records = [{"product_id": key[0], "location_id": key[1], "quantity": self.stock.get(key, 0.0)}]
                return httpx.Response(200, json=records)
            case "POST", "/proxy/flora-im/inventory":
                body = json.loads(request.content)
                if self.fail_inventory_writes:
                    print(f"  ✗ Stock write for {body['product_id']} refused")
                    return httpx.Response(503, json={"message": "ledger locked"})
                self.stock[(body["product_id"], body["location_id"])] = body["quantity"]
                print(f"  ✓ Stock {body['product_id']} -> {body['quantity']:g}")
                return httpx.Response(200, json={"success": True})
            case _:
                return httpx.Response(404, json={"error": f"no route {request.method} {path}"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(self))


def config() -> BackendConfig:
    return BackendConfig(base_url=BASE_URL)


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
