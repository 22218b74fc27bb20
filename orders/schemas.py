"""
Request and response shapes using Pydantic.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from orders.models.status import OrderStatus


# Decimal in Python, JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json")
]


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Render a timestamp as ISO-8601 UTC with millisecond precision"""
    if value is None:
        return None
    if value.tzinfo is None:
        # SQLite hands back naive datetimes; stored values are UTC
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class WireModel(BaseModel):
    """Base model with camelCase aliases"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    
    def to_wire(self) -> dict:
        """Convert to JSON-compatible dictionary with camelCase keys"""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateOrderItem(WireModel):
    """A requested line item"""
    product_id: int = Field(..., ge=1, description="Product identifier in the catalog")
    quantity: int = Field(..., ge=1, description="Quantity (must be >= 1)")


class CreateOrderRequest(WireModel):
    """Request to create an order"""
    items: List[CreateOrderItem] = Field(..., min_length=1, description="Line items")
    paid: bool = Field(default=False, description="Order already paid at creation")
    
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": [{"productId": 1, "quantity": 2}],
                "paid": False
            }
        }
    )
    
    @property
    def product_ids(self) -> List[int]:
        """Distinct product ids in request order"""
        return list(dict.fromkeys(item.product_id for item in self.items))


class PaginationOrderRequest(WireModel):
    """Request to list orders by status"""
    status: OrderStatus = OrderStatus.PENDING
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class FindOneOrderRequest(WireModel):
    """Request to fetch a single order"""
    id: UUID
    
    @property
    def order_id(self) -> str:
        return str(self.id)


class StatusOrderRequest(WireModel):
    """Request to change an order's status"""
    id: UUID
    status: OrderStatus
    
    @property
    def order_id(self) -> str:
        return str(self.id)


# ---------------------------------------------------------------------------
# Product service records
# ---------------------------------------------------------------------------

class Product(WireModel):
    """Product record returned by the product service"""
    id: int
    name: str = ""
    price: Money = Field(..., ge=0)
    
    @field_validator("name", mode="before")
    @classmethod
    def name_not_null(cls, v):
        return v or ""


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class OrderItemResponse(WireModel):
    """Line item enriched with the product name"""
    id: str
    product_id: int
    name: str = ""
    quantity: int
    price: Money
    total: Money


class OrderSummary(WireModel):
    """Order without its items"""
    id: str
    status: OrderStatus
    total_amount: Money
    total_items: int
    paid: bool = False
    paid_at: Optional[str] = None
    created_at: str
    updated_at: str
    
    @classmethod
    def from_row(cls, order, **extra) -> "OrderSummary":
        """Build from an Order row, normalizing timestamps"""
        return cls(
            id=order.id,
            status=order.status,
            total_amount=order.total_amount,
            total_items=order.total_items,
            paid=bool(order.paid),
            paid_at=to_iso(order.paid_at),
            created_at=to_iso(order.created_at),
            updated_at=to_iso(order.updated_at),
            **extra
        )


class OrderResponse(OrderSummary):
    """Full order including items"""
    items: List[OrderItemResponse] = Field(default_factory=list)


class PageMeta(WireModel):
    """Pagination metadata"""
    total: int
    limit: int
    total_pages: int
    page: int


class OrderPage(WireModel):
    """A page of orders"""
    data: List[OrderSummary]
    meta: PageMeta
