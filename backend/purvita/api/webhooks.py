"""
Payment Webhook Endpoint
Receives confirmed payments from the card gateways

Authenticated with the shared X-Webhook-Secret header instead of a session,
so it is exempt from CSRF checks.
"""
import hmac
import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, Field

from purvita.core.config import settings
from purvita.core.exceptions import ConfigurationError
from purvita.dependencies import get_order_creation_service, get_wallet_service
from purvita.domain.order import CartItem, OrderCreationParams, PaymentGateway
from purvita.services.order_creation_service import OrderCreationService
from purvita.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter()


class PaymentWebhookEvent(BaseModel):
    type: Literal["order", "wallet_recharge"] = "order"
    user_id: str = Field(..., min_length=1)
    gateway: Literal["stripe", "paypal"]
    gateway_transaction_id: str = Field(..., min_length=1)
    amount_cents: int = Field(..., description="Total paid in cents")
    currency: str = Field("USD", min_length=3, max_length=3)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    cart_items: List[CartItem] = Field(default_factory=list)
    tax_cents: int = Field(0, ge=0)
    shipping_cents: int = Field(0, ge=0)
    discount_cents: int = Field(0, ge=0)


def verify_webhook_secret(x_webhook_secret: Optional[str] = Header(None)) -> None:
    expected = settings.PAYMENT_WEBHOOK_SECRET
    if not expected:
        raise ConfigurationError("PAYMENT_WEBHOOK_SECRET not configured", missing_keys=["PAYMENT_WEBHOOK_SECRET"])

    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        logger.warning("Payment webhook rejected: invalid secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


@router.post("/payments", dependencies=[Depends(verify_webhook_secret)])
async def payment_webhook(
    event: PaymentWebhookEvent,
    order_service: OrderCreationService = Depends(get_order_creation_service),
    wallet_service: WalletService = Depends(get_wallet_service)
):
    """
    Process a confirmed gateway payment

    - wallet_recharge: credit the user's wallet once per gateway reference
    - order: create the paid order (duplicates are acknowledged, not re-created)
    """
    logger.info(
        f"Payment webhook: type={event.type}, gateway={event.gateway}, "
        f"transaction={event.gateway_transaction_id}, user={event.user_id}"
    )

    if event.type == "wallet_recharge":
        result = wallet_service.record_recharge(
            event.user_id,
            event.amount_cents,
            event.gateway,
            event.gateway_transaction_id,
            event.currency.upper()
        )
        return {
            "status": "duplicate" if result.already_processed else "recharged",
            "data": result.model_dump()
        }

    if order_service.order_exists_for_transaction(event.gateway_transaction_id):
        logger.info(f"Order already exists for transaction {event.gateway_transaction_id}")
        return {"status": "duplicate"}

    result = order_service.create_order_from_payment(OrderCreationParams(
        user_id=event.user_id,
        total_cents=event.amount_cents,
        currency=event.currency.upper(),
        gateway=PaymentGateway(event.gateway),
        gateway_transaction_id=event.gateway_transaction_id,
        metadata=event.metadata,
        cart_items=event.cart_items,
        tax_cents=event.tax_cents,
        shipping_cents=event.shipping_cents,
        discount_cents=event.discount_cents
    ))

    return {
        "status": "duplicate" if result.duplicate else "created",
        "data": result.model_dump()
    }
