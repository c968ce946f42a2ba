"""
Wallet API Endpoints
Balance, ledger and withdrawals of the current user
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from purvita.core.auth import TokenUser, get_current_user, require_csrf_token
from purvita.dependencies import get_wallet_service
from purvita.services.wallet_service import WalletService

router = APIRouter()


class WithdrawalRequest(BaseModel):
    amount_cents: int = Field(..., gt=0)
    payout_method: Optional[str] = Field(None, max_length=60)


@router.get("")
async def get_wallet(
    user: TokenUser = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    return {"status": "success", "data": {"user_id": user.id, "balance_cents": service.get_balance(user.id)}}


@router.get("/transactions")
async def get_wallet_transactions(
    limit: int = Query(50, ge=1, le=200),
    user: TokenUser = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    transactions = service.list_transactions(user.id, limit=limit)
    return {
        "status": "success",
        "count": len(transactions),
        "data": [txn.model_dump(mode="json") for txn in transactions]
    }


@router.get("/withdrawals/stats")
async def get_withdrawal_stats(
    user: TokenUser = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    return {"status": "success", "data": service.get_withdrawal_stats(user.id).model_dump()}


@router.post("/withdrawals", dependencies=[Depends(require_csrf_token)])
async def request_withdrawal(
    body: WithdrawalRequest,
    user: TokenUser = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    result = service.request_withdrawal(user.id, body.amount_cents, body.payout_method)
    return {"status": "success", "data": result.model_dump()}
