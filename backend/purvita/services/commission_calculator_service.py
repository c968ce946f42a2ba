"""
Commission Calculator Service
Computes and stores network commissions for paid orders

Only affiliate-store sales generate commissions:
- the seller's own commission (SellerCommissionService, wallet credit)
- the retail commission (group gain) for the seller's direct sponsor
- optional network commissions for deeper sponsors
"""
import logging
from typing import Any, Dict, List, Optional

from purvita.core.database import transaction
from purvita.core.exceptions import CommissionLockedError, NotFoundError
from purvita.core.money import apply_rate
from purvita.domain.commission import CommissionEntry, CommissionType
from purvita.domain.order import AFFILIATE_STORE_CHANNEL, read_metadata_string
from purvita.repositories import (
    NetworkEarningsRepository, OrderRepository, PhaseRepository, ProfileRepository, SubscriptionRepository,
)
from purvita.services.seller_commission_service import SellerCommissionService
from purvita.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

MAX_UPLINE_LEVELS = 10


class CommissionCalculatorService:
    """
    Service for network commission calculation

    Sponsors only earn when their latest subscription is active.
    """

    def __init__(
        self,
        settings_service: Optional[SettingsService] = None,
        profile_repo: Optional[ProfileRepository] = None,
        subscription_repo: Optional[SubscriptionRepository] = None,
        phase_repo: Optional[PhaseRepository] = None,
        order_repo: Optional[OrderRepository] = None,
        earnings_repo: Optional[NetworkEarningsRepository] = None,
        seller_commission_service: Optional[SellerCommissionService] = None
    ):
        self.settings_service = settings_service or SettingsService()
        self.profile_repo = profile_repo or ProfileRepository()
        self.subscription_repo = subscription_repo or SubscriptionRepository()
        self.phase_repo = phase_repo or PhaseRepository()
        self.order_repo = order_repo or OrderRepository()
        self.earnings_repo = earnings_repo or NetworkEarningsRepository()
        self.seller_commission_service = seller_commission_service or SellerCommissionService(
            settings_service=self.settings_service,
            phase_repo=self.phase_repo,
            subscription_repo=self.subscription_repo
        )

    def _resolve_order_metadata(
        self,
        order_id: Optional[str],
        provided: Optional[Dict[str, Any]],
        conn=None
    ) -> Optional[Dict[str, Any]]:
        if isinstance(provided, dict):
            return provided
        if not order_id:
            return None

        try:
            metadata = self.order_repo.find_metadata(order_id, conn=conn)
        except Exception as e:
            logger.warning(f"Failed to resolve metadata of order {order_id}: {e}")
            return None
        return metadata if isinstance(metadata, dict) else None

    def _has_active_subscription(self, user_id: str, conn=None) -> bool:
        try:
            subscription = self.subscription_repo.find_latest(user_id, conn=conn)
        except Exception as e:
            logger.warning(f"Error checking subscription of user {user_id}: {e}")
            return False
        return subscription is not None and subscription.is_active

    def get_upline(self, user_id: str, max_levels: int = MAX_UPLINE_LEVELS, conn=None) -> List[str]:
        """
        Sponsor chain of a user: [sponsor, sponsor's sponsor, ...]

        Stops at the root, after max_levels or when a user repeats.
        """
        upline: List[str] = []
        visited = {user_id}
        current = user_id

        for _ in range(max_levels):
            sponsor_id = self.profile_repo.find_sponsor_id(current, conn=conn)
            if not sponsor_id:
                break
            if sponsor_id in visited:
                logger.error(f"Circular referral detected in upline of {user_id} at {sponsor_id}")
                break
            upline.append(sponsor_id)
            visited.add(sponsor_id)
            current = sponsor_id

        return upline

    def _store(
        self,
        entry: CommissionEntry,
        order_id: Optional[str],
        currency: str,
        metadata: Dict[str, Any],
        conn=None
    ) -> bool:
        try:
            inserted_id = self.earnings_repo.insert_commission(order_id, entry, currency, metadata, conn=conn)
        except Exception as e:
            if conn is not None:
                raise
            logger.error(f"Failed to create {entry.commission_type.value} for sponsor {entry.user_id}: {e}")
            return False

        if inserted_id is None:
            logger.info(
                f"{entry.commission_type.value} for order {order_id} and sponsor {entry.user_id} already exists"
            )
            return False
        return True

    def calculate_and_create_commissions(
        self,
        buyer_id: str,
        total_cents: int,
        order_id: Optional[str] = None,
        order_metadata: Optional[Dict[str, Any]] = None,
        conn=None
    ) -> List[CommissionEntry]:
        """
        Calculate and create commissions for a purchase

        Args:
            buyer_id: The user who made the purchase
            total_cents: Purchase total in cents
            order_id: Order the commissions belong to
            order_metadata: Order metadata; loaded from the order when omitted
            conn: Join the caller's transaction (used by recalculation)

        Returns:
            Commission entries that were created by this call
        """
        metadata = self._resolve_order_metadata(order_id, order_metadata, conn=conn)
        affiliate_id = read_metadata_string(metadata, 'affiliateId', 'affiliate_id')
        sale_channel = read_metadata_string(metadata, 'saleChannel', 'sale_channel')

        is_affiliate_sale = bool(affiliate_id) and (
            sale_channel == AFFILIATE_STORE_CHANNEL if sale_channel else True
        )
        if not is_affiliate_sale:
            return []

        try:
            self.seller_commission_service.calculate_and_apply_seller_commission(
                affiliate_id, total_cents, order_id
            )
        except Exception as e:
            logger.error(f"Failed to apply seller commission for affiliate {affiliate_id}: {e}")

        app_settings = self.settings_service.get_app_settings()
        group_gain_by_level = self.settings_service.get_group_gain_rates()
        sale_total = max(total_cents or 0, 0)

        affiliate_phase = self.phase_repo.get_user_phase(affiliate_id, conn=conn)
        upline = self.get_upline(affiliate_id, conn=conn)
        if not upline:
            logger.info(f"No upline found for affiliate {affiliate_id}")
            return []

        commissions: List[CommissionEntry] = []

        # Retail commission: direct sponsor only
        direct_sponsor_id = upline[0]
        retail_rate = group_gain_by_level.get(affiliate_phase, 0)
        if not self._has_active_subscription(direct_sponsor_id, conn=conn):
            logger.info(f"Sponsor {direct_sponsor_id} has no active subscription, skipping retail commission")
        elif retail_rate <= 0:
            logger.info(f"No retail commission rate configured for phase {affiliate_phase}")
        else:
            entry = CommissionEntry(
                user_id=direct_sponsor_id,
                member_id=affiliate_id,
                level=1,
                amount_cents=apply_rate(sale_total, retail_rate),
                commission_type=CommissionType.RETAIL
            )
            stored = self._store(entry, order_id, app_settings.currency, {
                "retail_commission_rate": str(retail_rate),
                "sale_total_cents": sale_total,
                "affiliate_id": affiliate_id,
                "affiliate_phase": affiliate_phase,
                "buyer_id": buyer_id,
                "order_id": order_id,
            }, conn=conn)
            if stored:
                commissions.append(entry)
                logger.info(
                    f"Retail commission: sponsor {direct_sponsor_id}, affiliate {affiliate_id} "
                    f"(phase {affiliate_phase}), rate {retail_rate}, {entry.amount_cents} cents "
                    f"from sale of {sale_total} cents"
                )

        # Network commission for deeper levels (disabled while the rate is 0)
        network_rate = app_settings.network_commission_rate
        if network_rate > 0:
            for depth in range(2, app_settings.team_levels_visible + 1):
                if depth > len(upline):
                    break
                sponsor_id = upline[depth - 1]
                if not self._has_active_subscription(sponsor_id, conn=conn):
                    continue

                entry = CommissionEntry(
                    user_id=sponsor_id,
                    member_id=affiliate_id,
                    level=depth,
                    amount_cents=apply_rate(sale_total, network_rate),
                    commission_type=CommissionType.NETWORK
                )
                stored = self._store(entry, order_id, app_settings.currency, {
                    "network_commission_rate": str(network_rate),
                    "sale_total_cents": sale_total,
                    "affiliate_id": affiliate_id,
                    "buyer_id": buyer_id,
                    "order_id": order_id,
                }, conn=conn)
                if stored:
                    commissions.append(entry)

        return commissions

    def recalculate_order_commissions(self, order_id: str) -> List[CommissionEntry]:
        """
        Recompute the commissions of a paid order (e.g. after settings change)

        Raises:
            NotFoundError: order does not exist
            CommissionLockedError: some commission was already transferred
        """
        order = self.order_repo.find_by_id(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)

        if not order.is_paid:
            logger.info(f"Order {order_id} is not paid, skipping commission recalculation")
            return []

        with transaction() as conn:
            existing = self.earnings_repo.find_by_order(order_id, conn=conn, for_update=True)
            if any(commission.is_consumed for commission in existing):
                raise CommissionLockedError(order_id)

            deleted = self.earnings_repo.delete_by_order(order_id, conn=conn)
            logger.info(f"Deleted {deleted} commissions of order {order_id} for recalculation")

            return self.calculate_and_create_commissions(
                order.user_id,
                order.total_cents,
                order_id=order_id,
                order_metadata=order.metadata,
                conn=conn
            )
