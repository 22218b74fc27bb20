"""
Tests for request/response shapes
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from orders.models.status import OrderStatus
from orders.schemas import (
    CreateOrderRequest,
    OrderItemResponse,
    OrderResponse,
    PaginationOrderRequest,
    StatusOrderRequest,
    to_iso,
)


class TestRequests:
    """Test request validation"""
    
    def test_create_order_camel_case(self):
        request = CreateOrderRequest.model_validate({"items": [{"productId": 3, "quantity": 1}]})
        
        assert request.items[0].product_id == 3
        assert request.paid is False
    
    def test_product_ids_distinct_in_order(self):
        request = CreateOrderRequest.model_validate({"items": [
            {"productId": 3, "quantity": 1},
            {"productId": 1, "quantity": 1},
            {"productId": 3, "quantity": 2},
        ]})
        
        assert request.product_ids == [3, 1]
    
    @pytest.mark.parametrize("payload", [
        {"items": []},
        {"items": [{"productId": 1, "quantity": 0}]},
        {"items": [{"productId": 0, "quantity": 1}]},
        {},
    ])
    def test_create_order_invalid(self, payload):
        with pytest.raises(ValidationError):
            CreateOrderRequest.model_validate(payload)
    
    def test_pagination_bounds(self):
        with pytest.raises(ValidationError):
            PaginationOrderRequest(page=0)
        with pytest.raises(ValidationError):
            PaginationOrderRequest(limit=101)
    
    def test_status_request(self):
        request = StatusOrderRequest.model_validate({
            "id": "8c6b4f4e-7a52-4b3c-9a3b-2b0f5d1f9c11",
            "status": "CANCELLED"
        })
        
        assert request.order_id == "8c6b4f4e-7a52-4b3c-9a3b-2b0f5d1f9c11"
        assert request.status == OrderStatus.CANCELLED


class TestResponses:
    """Test response serialization"""
    
    def test_to_iso(self):
        assert to_iso(datetime(2024, 5, 1, 8, 30, 0, 123456, tzinfo=timezone.utc)) == "2024-05-01T08:30:00.123Z"
        # Naive values are UTC
        assert to_iso(datetime(2024, 5, 1, 8, 30)) == "2024-05-01T08:30:00.000Z"
        assert to_iso(None) is None
    
    def test_order_wire_format(self):
        response = OrderResponse(
            id="o-1",
            status=OrderStatus.PENDING,
            total_amount=Decimal("10.00"),
            total_items=2,
            created_at="2024-05-01T08:30:00.000Z",
            updated_at="2024-05-01T08:30:00.000Z",
            items=[OrderItemResponse(
                id="i-1",
                product_id=1,
                name="Pen",
                quantity=2,
                price=Decimal("5.00"),
                total=Decimal("10.00")
            )]
        )
        
        wire = response.to_wire()
        
        assert wire["totalAmount"] == 10.0
        assert wire["totalItems"] == 2
        assert wire["status"] == "PENDING"
        assert wire["paidAt"] is None
        assert wire["items"][0] == {
            "id": "i-1",
            "productId": 1,
            "name": "Pen",
            "quantity": 2,
            "price": 5.0,
            "total": 10.0,
        }
