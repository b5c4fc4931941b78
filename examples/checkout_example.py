"""
Checkout — one happy path, one stuck order, one operator retry.

Level 3: settle.saga
Level 2: settle.backend over httpx
Level 1: kungfu.Result
"""

from decimal import Decimal

from settle import CartLine, ConversionRatio, Customer, PaymentInfo, PricingTier, configure_logging
from settle import backend as B, saga as S
from settle.mapping import ProductMappingResolver
from examples._infra import FakeCommerce, banner, config, run

CART = (
    CartLine(product_id=101, name="Blue Dream", quantity=3.5, price=Decimal("10.00")),
    CartLine(
        product_id=202,
        name="Gelato Pre-Roll",
        quantity=7,
        price=Decimal("5.00"),
        discount_percentage=Decimal("10"),
        pricing_tier=PricingTier(
            label="Pre-Roll",
            rule_name="Pre-Roll",
            tier_price=Decimal("5.00"),
            tier_quantity=1,
            category="preroll",
            conversion_ratio=ConversionRatio(3.5, "g", 1, "unit", "3.5g per pre-roll"),
        ),
    ),
)
CUSTOMER = Customer(id=42, name="Ada Lovelace", email="ada@example.com")
LOCATION = 5


def coordinator_for(commerce: FakeCommerce) -> S.OrderSagaCoordinator:
    http = commerce.client()
    client = B.CommerceClient(http, config())
    return S.OrderSagaCoordinator(
        client,
        B.HttpInventoryService(http, config()),
        ProductMappingResolver(client),
    )


def report(outcome: S.OrderOutcome) -> None:
    print(f"\n{S.operator_message(outcome)}")
    print(f"  Actions: {sorted(a.value for a in S.allowed_actions(outcome)) or 'none'}")
    for record in outcome.trail:
        print(f"  · {record.state.value:<20} {record.status.value} {record.detail}")


async def main() -> None:
    configure_logging("WARNING")
    payment = PaymentInfo.single("cash", "70.00")

    banner("Checkout: everything succeeds")
    commerce = FakeCommerce()
    report(await coordinator_for(commerce).run(CART, CUSTOMER, payment, LOCATION))

    banner("Checkout: stock ledger refuses writes")
    commerce = FakeCommerce(fail_inventory_writes=True)
    coordinator = coordinator_for(commerce)
    outcome = await coordinator.run(CART, CUSTOMER, payment, LOCATION)
    report(outcome)

    match outcome:
        case S.CreatedButIncomplete() as stuck:
            banner(f"Operator retries inventory for #{stuck.order_id}")
            commerce.fail_inventory_writes = False
            report(await coordinator.remediate(stuck, CART, CUSTOMER, LOCATION))
        case _:
            pass


if __name__ == "__main__":
    run(main)
