from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

Amount = Decimal | int | float | str


def to_money(value: Amount) -> Decimal:
    # str() first so binary floats such as 0.1 quantize to what the client sent.
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_cost: Amount) -> Decimal:
    return to_money(quantity * to_money(unit_cost))


def sum_money(amounts: Iterable[Amount]) -> Decimal:
    return to_money(sum((to_money(a) for a in amounts), Decimal(0)))
