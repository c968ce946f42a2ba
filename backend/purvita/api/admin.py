"""
Admin API Endpoints
App settings, phase levels, advertising scripts, orders, wallets and referrals

All endpoints require the admin role; writes also require a CSRF token.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from purvita.core.auth import TokenUser, require_admin, require_csrf_token
from purvita.core.exceptions import NotFoundError
from purvita.dependencies import (
    get_advertising_repository, get_commission_service, get_order_repository, get_referral_service,
    get_settings_service, get_wallet_service,
)
from purvita.domain.advertising import AdvertisingScriptCreate, AdvertisingScriptUpdate
from purvita.domain.network import AppSettingsUpdate, PhaseLevelCreate, PhaseLevelUpdate
from purvita.domain.wallet import WalletReason
from purvita.repositories import AdvertisingScriptRepository, OrderRepository
from purvita.services.commission_calculator_service import CommissionCalculatorService
from purvita.services.referral_service import ReferralService
from purvita.services.settings_service import SettingsService
from purvita.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter()


class WalletAdjustmentRequest(BaseModel):
    amount_cents: int = Field(..., description="Signed amount; negative debits the wallet")
    note: Optional[str] = Field(None, max_length=500)


# ============================================================================
# App settings
# ============================================================================

@router.get("/app-settings")
async def get_app_settings(
    admin: TokenUser = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    return {"status": "success", "data": service.get_app_settings().model_dump(mode="json")}


@router.put("/app-settings", dependencies=[Depends(require_csrf_token)])
async def update_app_settings(
    update: AppSettingsUpdate,
    admin: TokenUser = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    saved = service.update_app_settings(update, actor_id=admin.id)
    logger.info(f"App settings updated by {admin.id}")
    return {"status": "success", "data": saved.model_dump(mode="json")}


# ============================================================================
# Phase levels
# ============================================================================

@router.get("/phase-levels")
async def list_phase_levels(
    admin: TokenUser = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    levels = service.list_phase_levels()
    return {"status": "success", "count": len(levels), "data": [level.model_dump(mode="json") for level in levels]}


@router.post("/phase-levels", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_csrf_token)])
async def create_phase_level(
    data: PhaseLevelCreate,
    admin: TokenUser = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    level = service.create_phase_level(data, actor_id=admin.id)
    return {"status": "success", "data": level.model_dump(mode="json")}


@router.put("/phase-levels/{level_id}", dependencies=[Depends(require_csrf_token)])
async def update_phase_level(
    level_id: str,
    data: PhaseLevelUpdate,
    admin: TokenUser = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    level = service.update_phase_level(level_id, data, actor_id=admin.id)
    return {"status": "success", "data": level.model_dump(mode="json")}


@router.delete("/phase-levels/{level_id}", dependencies=[Depends(require_csrf_token)])
async def delete_phase_level(
    level_id: str,
    admin: TokenUser = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    service.delete_phase_level(level_id, actor_id=admin.id)
    return {"status": "success", "message": f"Phase level {level_id} deleted"}


# ============================================================================
# Advertising scripts
# ============================================================================

@router.get("/advertising-scripts")
async def list_advertising_scripts(
    admin: TokenUser = Depends(require_admin),
    repo: AdvertisingScriptRepository = Depends(get_advertising_repository)
):
    scripts = repo.list_all()
    return {"status": "success", "count": len(scripts), "data": [s.model_dump(mode="json") for s in scripts]}


@router.post(
    "/advertising-scripts", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_csrf_token)]
)
async def create_advertising_script(
    data: AdvertisingScriptCreate,
    admin: TokenUser = Depends(require_admin),
    repo: AdvertisingScriptRepository = Depends(get_advertising_repository)
):
    script = repo.create(data)
    logger.info(f"Advertising script {script.id} created by {admin.id}")
    return {"status": "success", "data": script.model_dump(mode="json")}


@router.put("/advertising-scripts/{script_id}", dependencies=[Depends(require_csrf_token)])
async def update_advertising_script(
    script_id: str,
    data: AdvertisingScriptUpdate,
    admin: TokenUser = Depends(require_admin),
    repo: AdvertisingScriptRepository = Depends(get_advertising_repository)
):
    script = repo.update(script_id, data)
    if script is None:
        raise NotFoundError("Advertising script", script_id)
    return {"status": "success", "data": script.model_dump(mode="json")}


@router.delete("/advertising-scripts/{script_id}", dependencies=[Depends(require_csrf_token)])
async def delete_advertising_script(
    script_id: str,
    admin: TokenUser = Depends(require_admin),
    repo: AdvertisingScriptRepository = Depends(get_advertising_repository)
):
    if not repo.delete(script_id):
        raise NotFoundError("Advertising script", script_id)
    return {"status": "success", "message": f"Advertising script {script_id} deleted"}


# ============================================================================
# Orders & commissions
# ============================================================================

@router.get("/orders")
async def list_orders(
    user_id: Optional[str] = Query(None, description="Filter by buyer"),
    order_status: Optional[str] = Query(None, alias="status", description="Filter by order status"),
    gateway: Optional[str] = Query(None, description="Filter by gateway (stripe, paypal, wallet)"),
    purchase_source: Optional[str] = Query(None, description="main_store or affiliate_store"),
    from_date: Optional[datetime] = Query(None, description="Created at or after"),
    to_date: Optional[datetime] = Query(None, description="Created at or before"),
    search: Optional[str] = Query(None, description="Search by order id or transaction id"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: TokenUser = Depends(require_admin),
    repo: OrderRepository = Depends(get_order_repository)
):
    orders, total = repo.find_all(
        user_id=user_id,
        status=order_status,
        gateway=gateway,
        purchase_source=purchase_source,
        from_date=from_date,
        to_date=to_date,
        search=search,
        limit=limit,
        offset=offset
    )
    return {
        "status": "success",
        "total": total,
        "limit": limit,
        "offset": offset,
        "count": len(orders),
        "data": [order.to_dict() for order in orders]
    }


@router.post("/orders/{order_id}/recalculate-commissions", dependencies=[Depends(require_csrf_token)])
async def recalculate_commissions(
    order_id: str,
    admin: TokenUser = Depends(require_admin),
    service: CommissionCalculatorService = Depends(get_commission_service)
):
    """Delete and recompute the commissions of a paid order"""
    commissions = service.recalculate_order_commissions(order_id)
    logger.info(f"Commissions of order {order_id} recalculated by {admin.id}: {len(commissions)} created")
    return {
        "status": "success",
        "count": len(commissions),
        "data": [entry.model_dump(mode="json") for entry in commissions]
    }


# ============================================================================
# Wallets & referrals
# ============================================================================

@router.post("/wallets/{user_id}/adjust", dependencies=[Depends(require_csrf_token)])
async def adjust_wallet(
    user_id: str,
    body: WalletAdjustmentRequest,
    admin: TokenUser = Depends(require_admin),
    service: WalletService = Depends(get_wallet_service)
):
    result = service.add_funds(
        user_id,
        body.amount_cents,
        WalletReason.ADMIN_ADJUSTMENT,
        admin_id=admin.id,
        note=body.note
    )
    return {"status": "success", "data": result.model_dump()}


@router.get("/referrals/{user_id}/validate")
async def validate_referral_chain(
    user_id: str,
    admin: TokenUser = Depends(require_admin),
    service: ReferralService = Depends(get_referral_service)
):
    return {"status": "success", "data": service.validate_referral_chain(user_id).model_dump()}
