from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, Numeric, String
from sqlalchemy.orm import relationship
from orders.db import Base, utcnow
from orders.models.status import OrderStatus
import uuid

class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_items = Column(Integer, nullable=False, default=0)
    status = Column(Enum(OrderStatus, name="status"), nullable=False, default=OrderStatus.PENDING)
    paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Items live and die with their order
    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def __repr__(self):
        return f"<Order id={self.id} status={self.status} total_amount={self.total_amount}>"
