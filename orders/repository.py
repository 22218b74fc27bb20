"""
Order persistence: the only module that reads or writes the orders tables
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from orders.db import Database, UnitOfWork, utcnow
from orders.errors import OrderServiceError, ProductValidationError, TransactionError
from orders.models.order_item_model import OrderItem
from orders.models.order_model import Order
from orders.models.status import OrderStatus
from orders.schemas import CreateOrderItem
from orders.services.pricing import calculate_order_totals, quantize_price


class OrderRepository:
    """Repository for order operations"""
    
    def __init__(self, database: Database, clock: Callable[[], datetime] = utcnow):
        self.database = database
        self.clock = clock
        self.logger = structlog.get_logger().bind(component="order_repository")
    
    def unit_of_work(self) -> UnitOfWork:
        """New transaction scope over this repository's database"""
        return UnitOfWork(self.database.session_factory)
    
    def create_order_with_items(
        self,
        uow: UnitOfWork,
        lines: Sequence[CreateOrderItem],
        total_amount: Decimal,
        total_items: int,
        price_by_product_id: Mapping[int, Decimal],
        paid: bool = False
    ) -> Tuple[Order, List[OrderItem]]:
        """
        Insert an order and all of its items inside `uow`.
        
        Nothing becomes visible until the unit of work commits; any failure
        here propagates and the unit of work rolls everything back.
        
        Args:
            uow: Open unit of work
            lines: Requested line items
            total_amount: Order total, must equal sum(price * quantity)
            total_items: Item count, must equal sum(quantity)
            price_by_product_id: Snapshot unit price per product
            paid: Mark the order paid at creation
            
        Returns:
            Tuple of (order, items)
        """
        missing = {line.product_id for line in lines} - set(price_by_product_id)
        if missing:
            raise ProductValidationError(
                f"No price for products: {sorted(missing)}",
                missing_ids=missing
            )
        
        expected = calculate_order_totals(lines, price_by_product_id)
        if expected.total_amount != Decimal(total_amount) or expected.total_items != total_items:
            raise OrderServiceError(
                "Order totals do not match line items",
                error=f"expected {expected.total_amount}/{expected.total_items}, "
                      f"got {total_amount}/{total_items}"
            )
        
        now = self.clock()
        try:
            order = Order(
                id=str(uuid.uuid4()),
                status=OrderStatus.PENDING,
                total_amount=expected.total_amount,
                total_items=expected.total_items,
                paid=paid,
                paid_at=now if paid else None,
                created_at=now,
                updated_at=now
            )
            uow.session.add(order)
            
            items = [
                OrderItem(
                    id=str(uuid.uuid4()),
                    order_id=order.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=quantize_price(price_by_product_id[line.product_id])
                )
                for line in lines
            ]
            uow.session.add_all(items)
            uow.session.flush()
            
            self.logger.debug("Order rows staged", order_id=order.id, items=len(items))
            return order, items
            
        except SQLAlchemyError as e:
            self.logger.error("Failed to insert order", error=str(e))
            raise TransactionError(
                "Failed to create order. Transaction rolled back.",
                error=str(e)
            ) from e
    
    def find_order(self, order_id: str) -> Optional[Order]:
        """Get an order by id"""
        try:
            with self.database.session() as session:
                order = session.get(Order, order_id)
                self.logger.debug("Find order", order_id=order_id, found=order is not None)
                return order
        except SQLAlchemyError as e:
            self.logger.error("Error finding order", order_id=order_id, error=str(e))
            raise TransactionError("Failed to read order", entity_id=order_id, error=str(e)) from e
    
    def list_order_items(self, order_id: str) -> List[OrderItem]:
        """Get all items of an order"""
        try:
            with self.database.session() as session:
                return (
                    session.query(OrderItem)
                    .filter(OrderItem.order_id == order_id)
                    .order_by(OrderItem.product_id, OrderItem.id)
                    .all()
                )
        except SQLAlchemyError as e:
            self.logger.error("Error listing order items", order_id=order_id, error=str(e))
            raise TransactionError("Failed to read order items", entity_id=order_id, error=str(e)) from e
    
    def list_orders(self, status: OrderStatus, page: int, limit: int) -> Tuple[List[Order], int]:
        """
        Page through orders with the given status, newest first.
        
        Returns:
            Tuple of (orders on this page, count of all matching orders)
        """
        offset = (page - 1) * limit
        try:
            with self.database.session() as session:
                total = (
                    session.query(func.count(Order.id))
                    .filter(Order.status == status)
                    .scalar()
                ) or 0
                orders = (
                    session.query(Order)
                    .filter(Order.status == status)
                    .order_by(Order.created_at.desc(), Order.id)
                    .offset(offset)
                    .limit(limit)
                    .all()
                )
            self.logger.debug("List orders", status=OrderStatus(status).value, page=page, found=len(orders), total=total)
            return orders, total
        except SQLAlchemyError as e:
            self.logger.error("Error listing orders", status=str(status), error=str(e))
            raise TransactionError("Failed to list orders", error=str(e)) from e
    
    def update_status(self, order_id: str, new_status: OrderStatus) -> Optional[Order]:
        """Persist a new status and refresh updated_at; None if the order is gone"""
        try:
            with self.unit_of_work() as uow:
                order = uow.session.get(Order, order_id)
                if order is None:
                    return None
                order.status = new_status
                order.updated_at = self.clock()
                uow.session.flush()
            self.logger.info("Order status updated", order_id=order_id, status=OrderStatus(new_status).value)
            return order
        except SQLAlchemyError as e:
            self.logger.error("Error updating order status", order_id=order_id, error=str(e))
            raise TransactionError("Failed to update order status", entity_id=order_id, error=str(e)) from e
    
    def delete_order(self, order_id: str) -> bool:
        """Delete an order; its items go with it"""
        try:
            with self.unit_of_work() as uow:
                order = uow.session.get(Order, order_id)
                if order is None:
                    return False
                uow.session.delete(order)
            self.logger.info("Order deleted", order_id=order_id)
            return True
        except SQLAlchemyError as e:
            self.logger.error("Error deleting order", order_id=order_id, error=str(e))
            raise TransactionError("Failed to delete order", entity_id=order_id, error=str(e)) from e
