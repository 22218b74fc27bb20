"""
Tests for order persistence against an in-memory database
"""
from decimal import Decimal

import pytest

from orders.errors import OrderServiceError, ProductValidationError, TransactionError
from orders.models.order_item_model import OrderItem
from orders.models.order_model import Order
from orders.models.status import OrderStatus
from orders.schemas import CreateOrderItem


PRICES = {1: Decimal("5.00"), 2: Decimal("12.50")}


def count_rows(database, model):
    with database.session() as session:
        return session.query(model).count()


def create_order(repository, lines, paid=False):
    total_amount = sum(PRICES[line.product_id] * line.quantity for line in lines)
    total_items = sum(line.quantity for line in lines)
    with repository.unit_of_work() as uow:
        return repository.create_order_with_items(uow, lines, total_amount, total_items, PRICES, paid=paid)


class TestCreateOrderWithItems:
    """Test atomic order creation"""
    
    def test_creates_order_and_items(self, repository, database):
        order, items = create_order(repository, [
            CreateOrderItem(product_id=1, quantity=2),
            CreateOrderItem(product_id=2, quantity=1),
        ])
        
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("22.50")
        assert order.total_items == 3
        assert order.paid is False
        assert order.paid_at is None
        assert order.created_at == order.updated_at
        assert [item.price for item in items] == [Decimal("5.00"), Decimal("12.50")]
        assert all(item.order_id == order.id for item in items)
        
        assert count_rows(database, Order) == 1
        assert count_rows(database, OrderItem) == 2
    
    def test_paid_at_set_when_paid(self, repository):
        order, _ = create_order(repository, [CreateOrderItem(product_id=1, quantity=1)], paid=True)
        
        assert order.paid is True
        assert order.paid_at is not None
    
    def test_rollback_when_block_fails(self, repository, database):
        """Nothing survives if the unit of work exits with an exception"""
        with pytest.raises(RuntimeError):
            with repository.unit_of_work() as uow:
                repository.create_order_with_items(
                    uow,
                    [CreateOrderItem(product_id=1, quantity=2)],
                    Decimal("10.00"),
                    2,
                    PRICES
                )
                raise RuntimeError("boom")
        
        assert count_rows(database, Order) == 0
        assert count_rows(database, OrderItem) == 0
    
    def test_item_insert_failure_rolls_back_order(self, repository, database):
        """A failing item row takes the order row down with it"""
        bad_line = CreateOrderItem.model_construct(product_id=2, quantity=0)
        lines = [CreateOrderItem(product_id=1, quantity=1), bad_line]
        
        with pytest.raises(TransactionError, match="Transaction rolled back"):
            with repository.unit_of_work() as uow:
                repository.create_order_with_items(uow, lines, Decimal("5.00"), 1, PRICES)
        
        assert count_rows(database, Order) == 0
        assert count_rows(database, OrderItem) == 0
    
    def test_rejects_mismatched_totals(self, repository, database):
        with pytest.raises(OrderServiceError, match="totals do not match"):
            with repository.unit_of_work() as uow:
                repository.create_order_with_items(
                    uow,
                    [CreateOrderItem(product_id=1, quantity=2)],
                    Decimal("999.00"),
                    2,
                    PRICES
                )
        
        assert count_rows(database, Order) == 0
    
    def test_rejects_unpriced_product(self, repository, database):
        with pytest.raises(ProductValidationError) as exc_info:
            with repository.unit_of_work() as uow:
                repository.create_order_with_items(
                    uow,
                    [CreateOrderItem(product_id=42, quantity=1)],
                    Decimal("0"),
                    1,
                    PRICES
                )
        
        assert exc_info.value.missing_ids == [42]
        assert count_rows(database, Order) == 0


class TestReadsAndUpdates:
    """Test lookup, listing and status updates"""
    
    def test_find_order(self, repository):
        order, _ = create_order(repository, [CreateOrderItem(product_id=1, quantity=1)])
        
        found = repository.find_order(order.id)
        
        assert found.id == order.id
        assert found.total_amount == Decimal("5.00")
        assert repository.find_order("00000000-0000-4000-8000-000000000000") is None
    
    def test_list_order_items(self, repository):
        order, _ = create_order(repository, [
            CreateOrderItem(product_id=2, quantity=1),
            CreateOrderItem(product_id=1, quantity=4),
        ])
        
        items = repository.list_order_items(order.id)
        
        assert [(item.product_id, item.quantity) for item in items] == [(1, 4), (2, 1)]
    
    def test_list_orders_paginates_and_filters(self, repository):
        created = [create_order(repository, [CreateOrderItem(product_id=1, quantity=1)])[0] for _ in range(12)]
        repository.update_status(created[0].id, OrderStatus.CANCELLED)
        
        first_page, total = repository.list_orders(OrderStatus.PENDING, page=1, limit=5)
        last_page, _ = repository.list_orders(OrderStatus.PENDING, page=3, limit=5)
        cancelled, cancelled_total = repository.list_orders(OrderStatus.CANCELLED, page=1, limit=5)
        
        assert total == 11
        assert len(first_page) == 5
        assert len(last_page) == 1
        # Newest first
        assert first_page[0].id == created[-1].id
        assert cancelled_total == 1
        assert cancelled[0].id == created[0].id
    
    def test_update_status_refreshes_updated_at(self, repository):
        order, _ = create_order(repository, [CreateOrderItem(product_id=1, quantity=1)])
        
        updated = repository.update_status(order.id, OrderStatus.DELIVERED)
        
        assert updated.status == OrderStatus.DELIVERED
        assert updated.updated_at > order.updated_at
        assert repository.find_order(order.id).status == OrderStatus.DELIVERED
    
    def test_update_status_unknown_order(self, repository):
        assert repository.update_status("missing", OrderStatus.DELIVERED) is None
    
    def test_delete_cascades_to_items(self, repository, database):
        order, _ = create_order(repository, [
            CreateOrderItem(product_id=1, quantity=1),
            CreateOrderItem(product_id=2, quantity=1),
        ])
        
        assert repository.delete_order(order.id) is True
        assert repository.delete_order(order.id) is False
        assert count_rows(database, Order) == 0
        assert count_rows(database, OrderItem) == 0
