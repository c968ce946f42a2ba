"""
Payments API Endpoints
Checkout paid from the internal wallet
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from purvita.core.auth import TokenUser, get_current_user, require_csrf_token
from purvita.core.config import settings
from purvita.core.exceptions import ValidationError
from purvita.core.money import to_cents
from purvita.core.rate_limit import enforce_rate_limit
from purvita.dependencies import get_order_creation_service, get_wallet_service
from purvita.domain.order import CartItem, OrderCreationParams, PaymentGateway
from purvita.services.order_creation_service import OrderCreationService
from purvita.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter()


class WalletChargeRequest(BaseModel):
    amount: float = Field(..., gt=0, description="Amount in currency units (e.g. 10.99)")
    currency: str = Field(settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=255)
    cart_items: List[CartItem] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


@router.post("/wallet/charge", dependencies=[Depends(require_csrf_token)])
async def charge_wallet(
    body: WalletChargeRequest,
    user: TokenUser = Depends(get_current_user),
    wallet_service: WalletService = Depends(get_wallet_service),
    order_service: OrderCreationService = Depends(get_order_creation_service)
):
    """
    Pay a checkout with the wallet balance

    Flow:
    1. Rate limit per user
    2. Validate the affiliate before any money moves
    3. Debit the wallet
    4. Create the paid order (refund the debit if this fails)
    """
    enforce_rate_limit(
        user.id,
        prefix="wallet:charge",
        max_requests=settings.WALLET_CHARGE_RATE_LIMIT,
        window_seconds=settings.WALLET_CHARGE_RATE_WINDOW
    )

    amount_cents = to_cents(body.amount)
    if amount_cents <= 0:
        logger.warning(f"Invalid amount in wallet charge: user={user.id}, amount_cents={amount_cents}")
        raise ValidationError("Invalid amount", {"amount": "must be at least 0.01"})

    params = OrderCreationParams(
        user_id=user.id,
        total_cents=amount_cents,
        currency=body.currency.upper(),
        gateway=PaymentGateway.WALLET,
        gateway_transaction_id=f"wallet_{uuid.uuid4()}",
        metadata=body.metadata,
        cart_items=body.cart_items
    )

    if params.affiliate_id:
        order_service.validate_affiliate(user.id, params.affiliate_id, params.affiliate_referral_code)

    spend = wallet_service.spend_funds(
        user.id,
        amount_cents,
        meta={
            "type": "checkout_payment",
            "description": body.description,
            "currency": params.currency,
        },
        external_reference=params.gateway_transaction_id
    )
    logger.info(f"Wallet payment of {amount_cents} cents debited for user {user.id}")

    try:
        result = order_service.create_order_from_payment(params)
    except Exception as e:
        logger.error(f"Order creation failed after wallet debit for user {user.id}, refunding: {e}")
        wallet_service.refund(
            user.id,
            amount_cents,
            meta={"reason": "order_creation_failed", "payment_reference": params.gateway_transaction_id},
            external_reference=f"refund:{params.gateway_transaction_id}"
        )
        raise

    return {
        "status": "completed",
        "order_id": result.order_id,
        "remaining_balance_cents": spend.new_balance_cents,
        "transaction_id": spend.transaction_id,
        "commissions_created": result.commissions_created
    }
