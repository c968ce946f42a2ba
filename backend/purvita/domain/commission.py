"""
Commission Domain Models

Network commissions are earned by sponsors on purchases made through their
downline. Each row keeps an available balance that can later be moved to
the wallet.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CommissionType(str, Enum):
    RETAIL = "retail_commission"
    NETWORK = "network_commission"


class CommissionEntry(BaseModel):
    """A commission created for one sponsor on one order"""

    user_id: str = Field(..., description="Sponsor who earns the commission")
    member_id: str = Field(..., description="Member whose sale generated it")
    level: int = Field(..., ge=1, description="Distance from the member in the upline")
    amount_cents: int = Field(..., ge=0)
    commission_type: CommissionType = CommissionType.RETAIL


class NetworkCommission(BaseModel):
    id: str
    user_id: str
    member_id: str
    order_id: Optional[str] = None
    commission_type: str
    level: int
    amount_cents: int
    available_cents: int
    currency: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_consumed(self) -> bool:
        return self.available_cents < self.amount_cents


class MemberEarnings(BaseModel):
    member_id: str
    member_name: Optional[str] = None
    member_email: Optional[str] = None
    total_cents: int = 0


class NetworkEarningsSummary(BaseModel):
    total_available_cents: int = 0
    currency: str
    members: List[MemberEarnings] = Field(default_factory=list)


class CommissionDeduction(BaseModel):
    id: str
    deducted_cents: int
