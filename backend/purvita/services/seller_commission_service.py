"""
Seller Commission Service
Credits an affiliate's own earnings on sales made through their store
"""
import logging
from typing import Optional

from purvita.core.money import apply_rate
from purvita.domain.wallet import WalletReason
from purvita.repositories import PhaseRepository, SubscriptionRepository
from purvita.services.settings_service import SettingsService
from purvita.services.wallet_service import WalletService

logger = logging.getLogger(__name__)


class SellerCommissionService:

    def __init__(
        self,
        settings_service: Optional[SettingsService] = None,
        phase_repo: Optional[PhaseRepository] = None,
        subscription_repo: Optional[SubscriptionRepository] = None,
        wallet_service: Optional[WalletService] = None
    ):
        self.settings_service = settings_service or SettingsService()
        self.phase_repo = phase_repo or PhaseRepository()
        self.subscription_repo = subscription_repo or SubscriptionRepository()
        self.wallet_service = wallet_service or WalletService()

    def calculate_and_apply_seller_commission(
        self,
        affiliate_id: str,
        total_cents: int,
        order_id: Optional[str] = None
    ) -> int:
        """
        Pay the seller's ecommerce earnings for one sale

        Rate is the commission_rate of the seller's phase level. The wallet
        credit uses "sale_commission:<order_id>" as reference, so a repeated
        call for the same order credits nothing.

        Returns:
            Commission in cents (0 when nothing is paid)
        """
        if not affiliate_id or total_cents <= 0:
            return 0

        try:
            phase = self.phase_repo.get_user_phase(affiliate_id)
        except Exception as e:
            logger.error(f"Failed to load phase of seller {affiliate_id}: {e}")
            return 0

        subscription = self.subscription_repo.find_latest(affiliate_id)
        if subscription is None or not subscription.is_active_and_not_waitlisted:
            logger.info(f"Seller {affiliate_id} has no active subscription, skipping seller commission")
            return 0

        rate = self.settings_service.get_phase_commission_rate(phase)
        commission_cents = apply_rate(total_cents, rate)
        if commission_cents <= 0:
            return 0

        self.wallet_service.add_funds(
            affiliate_id,
            commission_cents,
            WalletReason.SALE_COMMISSION,
            meta={
                "order_id": order_id,
                "rate": str(rate),
                "phase": phase,
                "sale_total_cents": total_cents,
            },
            external_reference=f"sale_commission:{order_id}" if order_id else None
        )

        logger.info(
            f"Seller commission: {commission_cents} cents ({rate} at phase {phase}) "
            f"to {affiliate_id} for order {order_id}"
        )
        return commission_cents
