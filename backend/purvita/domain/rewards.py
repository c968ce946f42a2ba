"""
Phase Rewards Domain Models
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RewardType(str, Enum):
    FREE_PRODUCT = "free_product"
    STORE_CREDIT = "store_credit"


class PhaseReward(BaseModel):
    id: str
    user_id: str
    phase: int
    has_free_product: bool = False
    free_product_used: bool = False
    credit_remaining_cents: int = 0
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RewardDiscount(BaseModel):
    discount_cents: int = 0
    reward_type: Optional[RewardType] = None


class RewardApplicationResult(BaseModel):
    success: bool
    reward_type: Optional[RewardType] = None
    discount_applied_cents: int = 0
    remaining_credit_cents: Optional[int] = None
    error: Optional[str] = None
