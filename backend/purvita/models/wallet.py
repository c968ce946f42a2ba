"""
Modelos del monedero (wallet ledger)
"""
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func

from purvita.core.database import Base


class Wallet(Base):
    __tablename__ = "wallets"

    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), primary_key=True)
    balance_cents = Column(Integer, nullable=False, server_default="0")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="wallets_balance_non_negative"),
    )


class WalletTransaction(Base):
    """
    Movimiento del ledger

    (user_id, external_reference) is unique so gateway recharges and sale
    commissions are credited at most once.
    """
    __tablename__ = "wallet_txns"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), ForeignKey("wallets.user_id"), nullable=False, index=True)
    delta_cents = Column(Integer, nullable=False)
    reason = Column(String(40), nullable=False, index=True)
    meta = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    external_reference = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        UniqueConstraint("user_id", "external_reference", name="wallet_txns_user_reference_key"),
        CheckConstraint(
            "reason IN ('recharge', 'purchase', 'sale_commission', 'network_earnings_transfer', "
            "'withdrawal', 'refund', 'admin_adjustment')",
            name="wallet_txns_reason_check",
        ),
    )
