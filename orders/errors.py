"""
Error taxonomy for the orders service.

Every error carries a classification and maps onto a gRPC status code so the
transport layer can answer callers with a structured error.  Lower layers
raise these errors; the orchestrator stamps the operation name and entity id
on them and re-raises.
"""
from typing import Any, Dict, Iterable, Optional

import grpc


class OrderServiceError(Exception):
    """Base class for all orders service failures"""
    
    classification = "INTERNAL"
    status_code = grpc.StatusCode.INTERNAL
    
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        entity_id: Optional[str] = None,
        error: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.entity_id = entity_id
        self.error = error
    
    def with_context(self, operation: str, entity_id: Optional[str] = None) -> "OrderServiceError":
        """Fill in operation/entity id if the raising layer did not know them"""
        if self.operation is None:
            self.operation = operation
        if self.entity_id is None and entity_id is not None:
            self.entity_id = str(entity_id)
        return self
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the wire"""
        data = {
            "status": self.status_code.name,
            "classification": self.classification,
            "message": self.message,
        }
        if self.operation:
            data["operation"] = self.operation
        if self.entity_id:
            data["entityId"] = self.entity_id
        if self.error:
            data["error"] = self.error
        return data
    
    def __str__(self) -> str:
        return self.message


class InvalidRequestError(OrderServiceError):
    """Request failed shape/range validation"""
    classification = "INVALID_REQUEST"
    status_code = grpc.StatusCode.INVALID_ARGUMENT


class OrderNotFoundError(OrderServiceError):
    """Order id does not exist"""
    classification = "NOT_FOUND"
    status_code = grpc.StatusCode.NOT_FOUND
    
    def __init__(self, order_id: str, operation: Optional[str] = None):
        super().__init__(
            f"Order with id {order_id} not found",
            operation=operation,
            entity_id=str(order_id)
        )


class UpstreamValidationError(OrderServiceError):
    """Product service call failed or did not confirm every product"""
    classification = "UPSTREAM_VALIDATION_FAILURE"
    status_code = grpc.StatusCode.FAILED_PRECONDITION


class ProductValidationError(UpstreamValidationError):
    """Product service rejected or did not return some requested products"""
    
    def __init__(self, message: str, missing_ids: Iterable[Any] = (), **kwargs):
        super().__init__(message, **kwargs)
        self.missing_ids = sorted(missing_ids)
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.missing_ids:
            data["missingProductIds"] = list(self.missing_ids)
        return data


class ProductServiceUnavailableError(UpstreamValidationError):
    """Transport-level failure talking to the product service"""
    status_code = grpc.StatusCode.UNAVAILABLE


class TransactionError(OrderServiceError):
    """Persistence transaction failed and was rolled back"""
    classification = "TRANSACTION_FAILURE"
    status_code = grpc.StatusCode.INTERNAL


class InvalidStatusTransitionError(OrderServiceError):
    """Requested status change is not allowed from the current status"""
    classification = "INVALID_TRANSITION"
    status_code = grpc.StatusCode.FAILED_PRECONDITION
