"""
Modelos relacionados con órdenes y comisiones
"""
from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from purvita.core.database import Base


class Order(Base):
    """
    Tabla principal de órdenes - Single Source of Truth

    gateway_transaction_id is unique so concurrent webhook deliveries of the
    same payment can only insert one row.
    """
    __tablename__ = "orders"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False, index=True)

    # Estados
    status = Column(String(30), nullable=False, default="paid", index=True)

    # Montos (cents)
    total_cents = Column(Integer, nullable=False)
    tax_cents = Column(Integer, nullable=False, server_default="0")
    shipping_cents = Column(Integer, nullable=False, server_default="0")
    discount_cents = Column(Integer, nullable=False, server_default="0")
    currency = Column(String(3), nullable=False, server_default="USD")

    # Pago
    gateway = Column(String(20), nullable=False)
    gateway_transaction_id = Column(String(255), unique=True)
    purchase_source = Column(String(30), nullable=False, server_default="main_store")

    # Metadata
    metadata_ = Column("metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("gateway IN ('stripe', 'paypal', 'wallet')", name="orders_gateway_check"),
        CheckConstraint(
            "purchase_source IN ('main_store', 'affiliate_store')", name="orders_purchase_source_check"
        ),
        CheckConstraint("total_cents >= 0", name="orders_total_non_negative"),
    )


class OrderItem(Base):
    """
    Items/productos dentro de una orden
    """
    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    order_id = Column(
        UUID(as_uuid=False), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(String(255), nullable=False)
    qty = Column(Integer, nullable=False)
    price_cents = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("qty > 0", name="order_items_qty_positive"),
        CheckConstraint("price_cents >= 0", name="order_items_price_non_negative"),
    )


class NetworkCommission(Base):
    """
    Comisiones de red generadas por una orden

    available_cents is what the earner can still transfer to the wallet.
    """
    __tablename__ = "network_commissions"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False, index=True)
    member_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False)
    order_id = Column(UUID(as_uuid=False), ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    commission_type = Column(String(40), nullable=False)
    level = Column(Integer, nullable=False, server_default="1")
    amount_cents = Column(Integer, nullable=False)
    available_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, server_default="USD")
    metadata_ = Column("metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("order_id", "user_id", "commission_type", name="network_commissions_order_user_type_key"),
        CheckConstraint(
            "available_cents >= 0 AND available_cents <= amount_cents",
            name="network_commissions_available_range",
        ),
    )
