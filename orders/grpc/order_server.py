"""
gRPC server implementation for orders service
"""
import json
from concurrent import futures
from typing import Any, Callable, Dict

import grpc
from grpc_health.v1 import health, health_pb2, health_pb2_grpc
from pydantic import BaseModel, ValidationError
import structlog

from orders.errors import InvalidRequestError, OrderServiceError
from orders.grpc import codec
from orders.logging_config import bind_request_context
from orders.schemas import (
    CreateOrderRequest,
    FindOneOrderRequest,
    PaginationOrderRequest,
    StatusOrderRequest,
)
from orders.services.order_service import OrderService


logger = structlog.get_logger()

SERVICE_NAME = "orders.OrderService"


def _validation_message(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(loc) for loc in err["loc"]) or "request"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


class OrderServicer:
    """Implementation of the orders.OrderService commands"""
    
    def __init__(self, order_service: OrderService):
        self.order_service = order_service
        self.logger = structlog.get_logger().bind(component="grpc_server")
    
    def CreateOrder(self, request: Dict[str, Any], context) -> Dict[str, Any]:
        """createOrder: validate, price and persist a new order"""
        return self._handle("CreateOrder", request, context, CreateOrderRequest,
                            lambda req, timeout: self.order_service.create(req, timeout=timeout))
    
    def FindAllOrders(self, request: Dict[str, Any], context) -> Dict[str, Any]:
        """findAllOrders: page through orders by status"""
        return self._handle("FindAllOrders", request, context, PaginationOrderRequest,
                            lambda req, timeout: self.order_service.find_all(req))
    
    def FindOneOrder(self, request: Dict[str, Any], context) -> Dict[str, Any]:
        """findOneOrder: a single order with its items"""
        return self._handle("FindOneOrder", request, context, FindOneOrderRequest,
                            lambda req, timeout: self.order_service.find_one(req, timeout=timeout))
    
    def ChangeStatus(self, request: Dict[str, Any], context) -> Dict[str, Any]:
        """changeStatus: move an order to a new status"""
        return self._handle("ChangeStatus", request, context, StatusOrderRequest,
                            lambda req, timeout: self.order_service.change_status(req, timeout=timeout))
    
    def _handle(
        self,
        method: str,
        request: Dict[str, Any],
        context,
        request_model: type,
        call: Callable[[Any, Any], BaseModel]
    ) -> Dict[str, Any]:
        log = bind_request_context(self.logger, method=method)
        log.info("Request received")
        
        try:
            parsed = request_model.model_validate(request or {})
        except ValidationError as e:
            return self._fail(context, InvalidRequestError(_validation_message(e)), log)
        
        try:
            # Bound the outbound product call by the caller's own deadline
            result = call(parsed, context.time_remaining())
            log.info("Request completed")
            return result.to_wire()
        except OrderServiceError as e:
            return self._fail(context, e, log)
        except Exception as e:
            log.error("Unhandled error", error=str(e), exc_info=True)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details(json.dumps({
                "status": grpc.StatusCode.INTERNAL.name,
                "classification": "INTERNAL",
                "message": "Internal server error",
            }))
            return {}
    
    def _fail(self, context, error: OrderServiceError, log) -> Dict[str, Any]:
        log.warning("Request failed", classification=error.classification, error=error.message)
        context.set_code(error.status_code)
        context.set_details(json.dumps(error.to_dict()))
        return {}


def add_order_servicer_to_server(servicer: OrderServicer, server: grpc.Server) -> None:
    """Register the servicer's methods under orders.OrderService with the JSON codec"""
    method_names = ("CreateOrder", "FindAllOrders", "FindOneOrder", "ChangeStatus")
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=codec.deserialize,
            response_serializer=codec.serialize,
        )
        for name in method_names
    }
    server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),))


def create_grpc_server(order_service: OrderService, port: int, max_workers: int = 10) -> grpc.Server:
    """Create and configure gRPC server"""
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers))
    
    add_order_servicer_to_server(OrderServicer(order_service), server)
    
    # Register health service
    health_servicer = health.HealthServicer()
    health_servicer.set("orders", health_pb2.HealthCheckResponse.SERVING)
    health_pb2_grpc.add_HealthServicer_to_server(health_servicer, server)
    
    server.add_insecure_port(f'[::]:{port}')
    
    logger.info("gRPC server configured", port=port, max_workers=max_workers)
    return server
