"""
Order Creation Service
Turns a confirmed payment (gateway webhook or wallet charge) into a paid order

Handles:
- Affiliate fraud checks (self-referral, unknown or inactive affiliate, code mismatch)
- Race-safe order insert keyed by gateway transaction id
- Audit trail, order items and commissions (all best-effort)
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from purvita.core.exceptions import (
    AffiliateMismatchError, AffiliateValidationError, InactiveAffiliateError,
    InvalidAffiliateError, OrderCreationError, SelfReferralError,
)
from purvita.domain.network import Profile
from purvita.domain.order import (
    AFFILIATE_METADATA_KEYS, AFFILIATE_STORE_CHANNEL, OrderCreationParams, OrderCreationResult, PurchaseSource,
)
from purvita.repositories import AuditLogRepository, OrderRepository, ProfileRepository, SubscriptionRepository
from purvita.services.commission_calculator_service import CommissionCalculatorService

logger = logging.getLogger(__name__)


class OrderCreationService:

    def __init__(
        self,
        order_repo: Optional[OrderRepository] = None,
        profile_repo: Optional[ProfileRepository] = None,
        subscription_repo: Optional[SubscriptionRepository] = None,
        audit_repo: Optional[AuditLogRepository] = None,
        commission_service: Optional[CommissionCalculatorService] = None
    ):
        self.order_repo = order_repo or OrderRepository()
        self.profile_repo = profile_repo or ProfileRepository()
        self.subscription_repo = subscription_repo or SubscriptionRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.commission_service = commission_service or CommissionCalculatorService(
            profile_repo=self.profile_repo,
            subscription_repo=self.subscription_repo,
            order_repo=self.order_repo
        )

    def validate_affiliate(
        self,
        user_id: str,
        affiliate_id: str,
        affiliate_referral_code: Optional[str] = None
    ) -> Profile:
        """
        Check that an affiliate may earn on this purchase

        Checks run in order and the first failure wins:
        1. the buyer is not the affiliate
        2. the affiliate profile exists
        3. the affiliate's latest subscription is active and not waitlisted
        4. a provided referral code matches the affiliate's

        Returns:
            The affiliate's profile

        Raises:
            AffiliateValidationError (or a subclass)
        """
        if affiliate_id == user_id:
            logger.error(f"[SECURITY] Self-referral purchase attempt: user={user_id}")
            raise SelfReferralError(affiliate_id)

        affiliate = self.profile_repo.find_by_id(affiliate_id)
        if affiliate is None:
            logger.error(f"[SECURITY] Invalid affiliate ID in order: user={user_id}, affiliate={affiliate_id}")
            raise InvalidAffiliateError(affiliate_id)

        try:
            subscription = self.subscription_repo.find_latest(affiliate_id)
        except Exception as e:
            logger.error(f"[SECURITY] Error checking subscription of affiliate {affiliate_id}: {e}")
            raise AffiliateValidationError("Error validating affiliate subscription", affiliate_id)

        if subscription is None or not subscription.is_active_and_not_waitlisted:
            logger.error(
                f"[SECURITY] Affiliate {affiliate_id} has no active subscription "
                f"(status={subscription.status if subscription else None}, "
                f"waitlisted={subscription.waitlisted if subscription else None})"
            )
            raise InactiveAffiliateError(affiliate_id)

        if affiliate_referral_code and affiliate.referral_code != affiliate_referral_code:
            logger.error(
                f"[SECURITY] Affiliate ID does not match referral code: affiliate={affiliate_id}, "
                f"provided={affiliate_referral_code}, actual={affiliate.referral_code}"
            )
            raise AffiliateMismatchError(affiliate_id)

        logger.info(f"Validated affiliate {affiliate_id} for user {user_id}")
        return affiliate

    @staticmethod
    def _build_metadata(params: OrderCreationParams) -> Dict[str, Any]:
        # Attribution keys are only stored once validate_affiliate has accepted them
        metadata: Dict[str, Any] = {
            key: value for key, value in params.metadata.items() if key not in AFFILIATE_METADATA_KEYS
        }
        metadata["gateway"] = params.gateway.value
        if params.gateway_transaction_id:
            metadata["gateway_transaction_id"] = params.gateway_transaction_id
        if params.affiliate_id:
            metadata["affiliate_id"] = params.affiliate_id
            metadata["affiliate_referral_code"] = params.affiliate_referral_code
            metadata["sale_channel"] = params.sale_channel or AFFILIATE_STORE_CHANNEL
        metadata["created_from"] = "payment_webhook"
        metadata["timestamp"] = datetime.now(timezone.utc).isoformat()
        return metadata

    def create_order_from_payment(self, params: OrderCreationParams) -> OrderCreationResult:
        logger.info(
            f"Creating order for user {params.user_id}: total={params.total_cents}, "
            f"gateway={params.gateway.value}, items={len(params.cart_items)}, "
            f"affiliate={params.affiliate_id is not None}"
        )

        affiliate_id = params.affiliate_id
        if affiliate_id:
            self.validate_affiliate(params.user_id, affiliate_id, params.affiliate_referral_code)

        if affiliate_id or params.sale_channel == AFFILIATE_STORE_CHANNEL:
            purchase_source = PurchaseSource.AFFILIATE_STORE
        else:
            purchase_source = PurchaseSource.MAIN_STORE

        order_metadata = self._build_metadata(params)

        try:
            order_id, duplicate = self.order_repo.insert_paid_order(
                user_id=params.user_id,
                total_cents=params.total_cents,
                currency=params.currency,
                gateway=params.gateway.value,
                gateway_transaction_id=params.gateway_transaction_id,
                purchase_source=purchase_source.value,
                metadata=order_metadata,
                tax_cents=params.tax_cents,
                shipping_cents=params.shipping_cents,
                discount_cents=params.discount_cents
            )
        except OrderCreationError:
            raise
        except Exception as e:
            logger.error(f"Failed to create order for user {params.user_id}: {e}")
            raise OrderCreationError(f"Failed to create order: {e}")

        if duplicate:
            logger.info(f"Order for transaction {params.gateway_transaction_id} already exists: {order_id}")
            return OrderCreationResult(order_id=order_id, affiliate_id=affiliate_id, duplicate=True)

        logger.info(f"Order created successfully: {order_id}")

        try:
            product_names = ", ".join(item.product_name for item in params.cart_items if item.product_name)
            self.audit_repo.log_action("ORDER_PAID", "order", order_id, {
                "total_cents": params.total_cents,
                "currency": params.currency,
                "gateway": params.gateway.value,
                "items_count": len(params.cart_items),
                "product_names": product_names or "N/A",
                "affiliate_id": affiliate_id,
            }, actor_id=params.user_id)
        except Exception as e:
            logger.warning(f"Failed to log paid order audit for {order_id}: {e}")

        if params.cart_items:
            try:
                self.order_repo.insert_items(order_id, params.cart_items)
            except Exception as e:
                logger.error(f"Failed to create order items for {order_id}: {e}")

        commissions_created = 0
        try:
            commissions = self.commission_service.calculate_and_create_commissions(
                params.user_id,
                params.total_cents,
                order_id=order_id,
                order_metadata=order_metadata
            )
            commissions_created = len(commissions)
            logger.info(f"Created {commissions_created} commissions for order {order_id}")
        except Exception as e:
            logger.error(f"Failed to create commissions for order {order_id}: {e}")

        return OrderCreationResult(
            order_id=order_id,
            commissions_created=commissions_created,
            affiliate_id=affiliate_id
        )

    def order_exists_for_transaction(self, gateway_transaction_id: Optional[str]) -> bool:
        if not gateway_transaction_id:
            return False

        try:
            return self.order_repo.find_id_by_transaction(gateway_transaction_id) is not None
        except Exception as e:
            logger.error(f"Error checking for existing order {gateway_transaction_id}: {e}")
            return False
