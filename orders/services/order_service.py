"""
Business logic for order operations
"""
import math
from typing import List, Optional

import structlog

from orders.clients.product_client import ProductLookup
from orders.errors import (
    InvalidRequestError,
    OrderNotFoundError,
    OrderServiceError,
    ProductValidationError,
    UpstreamValidationError,
)
from orders.repository import OrderRepository
from orders.schemas import (
    CreateOrderRequest,
    FindOneOrderRequest,
    OrderPage,
    OrderResponse,
    OrderSummary,
    PageMeta,
    PaginationOrderRequest,
    Product,
    StatusOrderRequest,
)
from orders.services.enrichment import enrich_order_items
from orders.services.pricing import calculate_order_totals, price_index
from orders.services.status_policy import check_transition


class OrderService:
    """Service layer sequencing product validation, pricing, persistence and enrichment"""
    
    def __init__(
        self,
        repository: OrderRepository,
        product_lookup: ProductLookup,
        enforce_transitions: bool = True
    ):
        self.repo = repository
        self.products = product_lookup
        self.enforce_transitions = enforce_transitions
        self.logger = structlog.get_logger().bind(component="order_service")
    
    def create(self, request: CreateOrderRequest, timeout: Optional[float] = None) -> OrderResponse:
        """
        Create an order from validated, priced line items.
        
        Args:
            request: Requested line items
            timeout: Deadline in seconds for the product service call
            
        Returns:
            Full order including enriched items
            
        Raises:
            InvalidRequestError: No items requested
            UpstreamValidationError: Product service failed or did not know every product
            TransactionError: Persistence failed; nothing was written
        """
        operation = "createOrder"
        try:
            if not request.items:
                raise InvalidRequestError("Order must contain at least one item")
            
            products = self._validate_products(request.product_ids, timeout)
            prices = price_index(products)
            totals = calculate_order_totals(request.items, prices)
            
            with self.repo.unit_of_work() as uow:
                order, items = self.repo.create_order_with_items(
                    uow,
                    request.items,
                    totals.total_amount,
                    totals.total_items,
                    prices,
                    paid=request.paid
                )
            
            self.logger.info(
                "Order created",
                order_id=order.id,
                total_amount=str(order.total_amount),
                total_items=order.total_items
            )
            return OrderResponse.from_row(order, items=enrich_order_items(items, products))
            
        except OrderServiceError as e:
            self.logger.warning("Order creation failed", error=e.message, classification=e.classification)
            raise e.with_context(operation)
    
    def find_one(self, request: FindOneOrderRequest, timeout: Optional[float] = None) -> OrderResponse:
        """
        Get an order with its items.
        
        Items are enriched with product names on a best-effort basis.
        
        Raises:
            OrderNotFoundError: Unknown order id
        """
        operation = "findOneOrder"
        order_id = request.order_id
        try:
            order = self.repo.find_order(order_id)
            if order is None:
                self.logger.warning("Order not found", order_id=order_id)
                raise OrderNotFoundError(order_id, operation=operation)
            
            return self._build_response(order, timeout)
            
        except OrderServiceError as e:
            raise e.with_context(operation, order_id)
    
    def find_all(self, request: PaginationOrderRequest) -> OrderPage:
        """List orders with the given status, one page at a time"""
        operation = "findAllOrders"
        try:
            orders, total = self.repo.list_orders(request.status, request.page, request.limit)
        except OrderServiceError as e:
            raise e.with_context(operation)
        
        return OrderPage(
            data=[OrderSummary.from_row(order) for order in orders],
            meta=PageMeta(
                total=total,
                limit=request.limit,
                total_pages=math.ceil(total / request.limit),
                page=request.page
            )
        )
    
    def change_status(self, request: StatusOrderRequest, timeout: Optional[float] = None) -> OrderResponse:
        """
        Move an order to a new status.
        
        Asking for the current status returns the order untouched.
        
        Raises:
            OrderNotFoundError: Unknown order id
            InvalidStatusTransitionError: Transition not allowed from the current status
        """
        operation = "changeStatus"
        order_id = request.order_id
        try:
            order = self.repo.find_order(order_id)
            if order is None:
                raise OrderNotFoundError(order_id, operation=operation)
            
            if order.status == request.status:
                self.logger.info("Order already in requested status", order_id=order_id, status=request.status.value)
                return self._build_response(order, timeout)
            
            check_transition(order.status, request.status, enforce=self.enforce_transitions)
            
            updated = self.repo.update_status(order_id, request.status)
            if updated is None:
                # Deleted between the read and the write
                raise OrderNotFoundError(order_id, operation=operation)
            
            self.logger.info(
                "Order status changed",
                order_id=order_id,
                old_status=order.status.value,
                new_status=updated.status.value
            )
            return self._build_response(updated, timeout)
            
        except OrderServiceError as e:
            self.logger.warning("Status change failed", order_id=order_id, error=e.message)
            raise e.with_context(operation, order_id)
    
    def _validate_products(self, product_ids: List[int], timeout: Optional[float]) -> List[Product]:
        """Fetch products and require every requested id to be present"""
        products = self.products.lookup_products(product_ids, timeout=timeout)
        
        missing = set(product_ids) - {product.id for product in products}
        if missing:
            raise ProductValidationError(
                f"Products not found: {sorted(missing)}",
                missing_ids=missing
            )
        return products
    
    def _build_response(self, order, timeout: Optional[float]) -> OrderResponse:
        """Load items and enrich them without letting catalog failures hide the order"""
        items = self.repo.list_order_items(order.id)
        
        products: List[Product] = []
        if items:
            try:
                products = self.products.lookup_products(
                    [item.product_id for item in items],
                    timeout=timeout
                )
            except UpstreamValidationError as e:
                self.logger.warning(
                    "Product details unavailable, returning items without names",
                    order_id=order.id,
                    error=e.message
                )
        
        return OrderResponse.from_row(order, items=enrich_order_items(items, products))
