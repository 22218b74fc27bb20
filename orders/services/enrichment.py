"""
Join persisted order items with catalog product details
"""
from decimal import Decimal
from typing import Iterable, List

from orders.schemas import OrderItemResponse, Product


def enrich_order_items(items: Iterable, products: Iterable[Product]) -> List[OrderItemResponse]:
    """
    Build response items from persisted rows.
    
    Price and quantity always come from the persisted row.  A product the
    catalog no longer knows keeps an empty name instead of failing the response.
    """
    names = {product.id: product.name for product in products}
    
    enriched = []
    for item in items:
        price = Decimal(item.price)
        enriched.append(OrderItemResponse(
            id=item.id,
            product_id=item.product_id,
            name=names.get(item.product_id, ""),
            quantity=item.quantity,
            price=price,
            total=price * item.quantity
        ))
    return enriched
