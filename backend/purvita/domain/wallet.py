"""
Wallet Domain Models

The wallet is a cents-denominated balance per user. Every change is a
wallet transaction (delta + reason); the balance is never negative.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class WalletReason(str, Enum):
    RECHARGE = "recharge"
    PURCHASE = "purchase"
    SALE_COMMISSION = "sale_commission"
    NETWORK_EARNINGS_TRANSFER = "network_earnings_transfer"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"
    ADMIN_ADJUSTMENT = "admin_adjustment"


class Wallet(BaseModel):
    user_id: str
    balance_cents: int = Field(0, ge=0)
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WalletTransaction(BaseModel):
    id: str
    user_id: str
    delta_cents: int
    reason: str
    meta: Dict[str, Any] = Field(default_factory=dict)
    external_reference: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionResult(BaseModel):
    transaction_id: str
    previous_balance_cents: int
    new_balance_cents: int
    duplicate: bool = False


class WithdrawalStats(BaseModel):
    total_withdrawn_24h_cents: int
    daily_limit_cents: int
    remaining_limit_cents: int
    current_balance_cents: int
    limit_exceeded: bool


class RechargeResult(BaseModel):
    already_processed: bool
    transaction_id: Optional[str] = None
    new_balance_cents: Optional[int] = None
