"""
Order totals calculation
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Mapping, Sequence, Union

from orders.schemas import CreateOrderItem, Product


# Matches the Numeric(12, 2) price and amount columns
CENT = Decimal("0.01")


@dataclass(frozen=True)
class OrderTotals:
    """Derived order totals"""
    total_amount: Decimal
    total_items: int


def quantize_price(price) -> Decimal:
    """Round a unit price to whole cents"""
    return Decimal(price).quantize(CENT, rounding=ROUND_HALF_UP)


def price_index(products: Iterable[Product]) -> Dict[int, Decimal]:
    """Map product id -> current unit price in whole cents"""
    return {product.id: quantize_price(product.price) for product in products}


def calculate_order_totals(
    lines: Sequence[CreateOrderItem],
    products: Union[Iterable[Product], Mapping[int, Decimal]]
) -> OrderTotals:
    """
    Sum price x quantity and quantity over the requested lines.
    
    Every line's product must be present in `products`; callers reject the
    order before getting here otherwise.
    """
    if isinstance(products, Mapping):
        prices = {product_id: quantize_price(price) for product_id, price in products.items()}
    else:
        prices = price_index(products)
    
    total_amount = Decimal("0.00")
    total_items = 0
    for line in lines:
        total_amount += prices[line.product_id] * line.quantity
        total_items += line.quantity
    
    return OrderTotals(total_amount=total_amount, total_items=total_items)
