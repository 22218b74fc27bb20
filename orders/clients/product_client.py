"""
gRPC client for the Product service
"""
from typing import Iterable, List, Optional, Protocol

import grpc
import structlog
from pydantic import ValidationError

from orders.errors import ProductServiceUnavailableError, ProductValidationError
from orders.grpc import codec
from orders.schemas import Product

logger = structlog.get_logger()

DEFAULT_VALIDATE_METHOD = "/products.ProductService/ValidateProducts"

# Codes meaning the product service understood the request and refused it
_REJECTION_CODES = (
    grpc.StatusCode.NOT_FOUND,
    grpc.StatusCode.INVALID_ARGUMENT,
    grpc.StatusCode.FAILED_PRECONDITION,
)


class ProductLookup(Protocol):
    """Anything that can resolve product ids to product records"""

    def lookup_products(self, product_ids: Iterable[int], timeout: Optional[float] = None) -> List[Product]:
        ...


class ProductClient:
    """Client for the product service's validate-products capability"""
    
    def __init__(
        self,
        product_url: str,
        validate_method: str = DEFAULT_VALIDATE_METHOD,
        default_timeout: Optional[float] = None,
        channel: Optional[grpc.Channel] = None
    ):
        """
        Initialize Product client
        
        Args:
            product_url: Product service address (host:port)
            validate_method: Fully qualified gRPC method path
            default_timeout: Timeout used when the caller passes none (None = no deadline)
            channel: Pre-built channel (tests); a new insecure channel otherwise
        """
        self.product_url = product_url
        self.validate_method = validate_method
        self.default_timeout = default_timeout
        self.channel = channel or grpc.insecure_channel(product_url)
        self._validate_products = self.channel.unary_unary(
            validate_method,
            request_serializer=codec.serialize,
            response_deserializer=codec.deserialize,
        )
        logger.info("Product client connected", url=product_url, method=validate_method)
    
    def lookup_products(self, product_ids: Iterable[int], timeout: Optional[float] = None) -> List[Product]:
        """
        Fetch the catalog records for the given ids
        
        Args:
            product_ids: Product identifiers, duplicates allowed
            timeout: Deadline in seconds for the remote call
            
        Returns:
            Records for the ids the catalog knows; unknown ids are simply absent
            
        Raises:
            ProductValidationError: The product service rejected the request
            ProductServiceUnavailableError: The call itself failed or the reply was malformed
        """
        ids = sorted(set(product_ids))
        if not ids:
            return []
        
        if timeout is None:
            timeout = self.default_timeout
        
        try:
            response = self._validate_products(ids, timeout=timeout)
        except grpc.RpcError as e:
            code = e.code()
            details = e.details()
            if code in _REJECTION_CODES:
                logger.warning("Product service rejected ids", ids=ids, code=code.name, details=details)
                raise ProductValidationError(
                    details or "Product service rejected the requested products",
                    error=code.name
                ) from e
            logger.error("Error calling product service", ids=ids, code=code.name if code else None, details=details)
            raise ProductServiceUnavailableError(
                "Failed to fetch product details",
                error=details or (code.name if code else str(e))
            ) from e
        
        try:
            if isinstance(response, dict):
                response = response.get("products", [])
            if not isinstance(response, list):
                raise TypeError(f"expected a list of products, got {type(response).__name__}")
            products = [Product.model_validate(p) for p in response]
        except (ValidationError, TypeError, AttributeError) as e:
            logger.error("Malformed product service reply", ids=ids, error=str(e))
            raise ProductServiceUnavailableError(
                "Malformed product service reply",
                error=str(e)
            ) from e
        
        logger.debug("Products fetched from catalog", requested=len(ids), found=len(products))
        return products
    
    def close(self):
        """Close gRPC connection"""
        if self.channel:
            self.channel.close()
            logger.info("Product client connection closed")
