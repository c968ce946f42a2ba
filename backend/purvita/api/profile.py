"""
Profile API Endpoints
Profile summary, referral status, recharge confirmation and network earnings
"""
import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from purvita.core.auth import TokenUser, get_current_user, require_csrf_token
from purvita.core.config import settings
from purvita.dependencies import (
    get_earnings_repository, get_profile_service, get_referral_service, get_settings_service, get_wallet_service,
)
from purvita.domain.network import ProfileUpdate
from purvita.repositories import NetworkEarningsRepository
from purvita.services.profile_service import ProfileService
from purvita.services.referral_service import ReferralService
from purvita.services.settings_service import SettingsService
from purvita.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter()


# Request models
class ReferralRequest(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=64)


class RechargeConfirmRequest(BaseModel):
    gateway: Literal["stripe", "paypal"]
    gateway_ref: str = Field(..., min_length=1, description="Gateway payment/capture id")
    amount_cents: int
    currency: str = Field("USD", min_length=3, max_length=3)


class EarningsTransferRequest(BaseModel):
    amount_cents: int = Field(..., gt=0)


@router.get("/summary")
async def get_profile_summary(
    user: TokenUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """
    Get the profile page summary

    Returns profile, phase, subscription, wallet balance, recent orders,
    network earnings and active phase rewards
    """
    return {"status": "success", "data": service.get_summary(user.id)}


@router.patch("/summary", dependencies=[Depends(require_csrf_token)])
async def update_profile_summary(
    update: ProfileUpdate,
    user: TokenUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    profile = service.update_profile(user.id, update)
    return {"status": "success", "data": profile.model_dump(mode="json")}


@router.get("/referral-status")
async def get_referral_status(
    user: TokenUser = Depends(get_current_user),
    service: ReferralService = Depends(get_referral_service)
):
    return {"status": "success", "data": service.get_referral_status(user.id)}


@router.post("/referral", dependencies=[Depends(require_csrf_token)])
async def assign_referral(
    body: ReferralRequest,
    user: TokenUser = Depends(get_current_user),
    service: ReferralService = Depends(get_referral_service)
):
    """Attach the current user to the sponsor owning a referral code"""
    return {"status": "success", "data": service.assign_sponsor(user.id, body.referral_code)}


@router.post("/recharge/confirm", dependencies=[Depends(require_csrf_token)])
async def confirm_recharge(
    body: RechargeConfirmRequest,
    user: TokenUser = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    """
    Record a wallet recharge from the sandbox checkout

    Only available with PAYMENT_TEST_MODE; in production the payment webhook
    is the only path that credits a recharge. Idempotent by gateway_ref: a
    second confirmation reports already_processed.
    """
    if not settings.PAYMENT_TEST_MODE:
        logger.warning(f"[SECURITY] Recharge confirmation refused for user {user.id} (ref {body.gateway_ref})")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Recharges are confirmed by the payment webhook"
        )

    result = service.record_recharge(
        user.id,
        body.amount_cents,
        body.gateway,
        body.gateway_ref,
        body.currency.upper()
    )
    return {"status": "success", "data": result.model_dump()}


@router.get("/earnings")
async def get_network_earnings(
    user: TokenUser = Depends(get_current_user),
    earnings_repo: NetworkEarningsRepository = Depends(get_earnings_repository),
    settings_service: SettingsService = Depends(get_settings_service)
):
    currency = settings_service.get_app_settings().currency
    summary = earnings_repo.fetch_available_summary(user.id, default_currency=currency)
    return {"status": "success", "data": summary.model_dump(mode="json")}


@router.post("/earnings/transfer", dependencies=[Depends(require_csrf_token)])
async def transfer_network_earnings(
    body: EarningsTransferRequest,
    user: TokenUser = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service)
):
    """Move available network earnings into the wallet"""
    result = service.transfer_network_earnings(user.id, body.amount_cents)
    return {"status": "success", "data": result.model_dump()}
