"""
Order status enum
"""
from enum import Enum


class OrderStatus(str, Enum):
    """Order status enum"""
    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
