"""
Orders API Endpoints
The current user's orders and phase reward discounts
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from purvita.core.auth import TokenUser, get_current_user, require_csrf_token
from purvita.core.exceptions import NotFoundError
from purvita.dependencies import get_order_repository, get_rewards_service
from purvita.domain.rewards import RewardType
from purvita.repositories import OrderRepository
from purvita.services.phase_rewards_service import PhaseRewardsService

router = APIRouter()


class ApplyRewardRequest(BaseModel):
    discount_cents: int = Field(..., gt=0)
    reward_type: RewardType


@router.get("")
async def get_my_orders(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: TokenUser = Depends(get_current_user),
    repo: OrderRepository = Depends(get_order_repository)
):
    orders, total = repo.find_all(user_id=user.id, limit=limit, offset=offset)
    return {
        "status": "success",
        "total": total,
        "limit": limit,
        "offset": offset,
        "count": len(orders),
        "data": [order.to_dict() for order in orders]
    }


@router.get("/rewards/discount")
async def get_reward_discount(
    subtotal_cents: int = Query(..., ge=0),
    user: TokenUser = Depends(get_current_user),
    service: PhaseRewardsService = Depends(get_rewards_service)
):
    """Discount the user's phase reward would give on a cart subtotal"""
    discount = service.calculate_discount(user.id, subtotal_cents)
    return {"status": "success", "data": discount.model_dump()}


@router.post("/apply-rewards", dependencies=[Depends(require_csrf_token)])
async def apply_rewards(
    body: ApplyRewardRequest,
    user: TokenUser = Depends(get_current_user),
    service: PhaseRewardsService = Depends(get_rewards_service)
):
    result = service.apply_reward(user.id, body.discount_cents, body.reward_type)
    return {"status": "success" if result.success else "failed", "data": result.model_dump()}


@router.get("/{order_id}")
async def get_my_order(
    order_id: str,
    user: TokenUser = Depends(get_current_user),
    repo: OrderRepository = Depends(get_order_repository)
):
    order = repo.find_by_id(order_id, user_id=user.id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return {"status": "success", "data": order.to_dict()}
