"""
Phase Rewards Service
Applies phase rewards (free product, store credit) as purchase discounts

Phase 1 grants one free product; phase 2 and above grant store credit.
"""
import logging
from typing import Optional

from purvita.core.database import transaction
from purvita.domain.rewards import PhaseReward, RewardApplicationResult, RewardDiscount, RewardType
from purvita.repositories import PhaseRewardsRepository
from purvita.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def _failure(error: str) -> RewardApplicationResult:
    return RewardApplicationResult(success=False, error=error)


class PhaseRewardsService:

    def __init__(
        self,
        rewards_repo: Optional[PhaseRewardsRepository] = None,
        settings_service: Optional[SettingsService] = None
    ):
        self.rewards_repo = rewards_repo or PhaseRewardsRepository()
        self.settings_service = settings_service or SettingsService()

    def get_active_rewards(self, user_id: str) -> Optional[PhaseReward]:
        try:
            return self.rewards_repo.find_active(user_id)
        except Exception as e:
            logger.error(f"Error fetching phase rewards of user {user_id}: {e}")
            return None

    def calculate_discount(self, user_id: str, subtotal_cents: int) -> RewardDiscount:
        reward = self.get_active_rewards(user_id)
        if reward is None or subtotal_cents <= 0:
            return RewardDiscount()

        if reward.phase == 1 and reward.has_free_product and not reward.free_product_used:
            max_discount = self.settings_service.get_phase_free_product_value_cents(reward.phase)
            return RewardDiscount(
                discount_cents=min(subtotal_cents, max_discount),
                reward_type=RewardType.FREE_PRODUCT
            )

        if reward.phase >= 2 and reward.credit_remaining_cents > 0:
            configured_credit = self.settings_service.get_phase_credit_cents(reward.phase)
            if configured_credit > 0:
                credit_cap = min(reward.credit_remaining_cents, configured_credit)
            else:
                credit_cap = reward.credit_remaining_cents
            return RewardDiscount(
                discount_cents=min(subtotal_cents, credit_cap),
                reward_type=RewardType.STORE_CREDIT
            )

        return RewardDiscount()

    def apply_reward(self, user_id: str, discount_cents: int, reward_type: RewardType) -> RewardApplicationResult:
        """
        Consume a reward after payment is confirmed

        The reward row stays locked until the change is committed, so two
        checkouts cannot spend the same free product or credit.
        """
        if discount_cents <= 0:
            return _failure("Discount must be greater than zero")

        with transaction() as conn:
            reward = self.rewards_repo.find_active(user_id, conn=conn, for_update=True)
            if reward is None:
                return _failure("No active rewards found")

            if reward_type == RewardType.FREE_PRODUCT:
                if reward.phase != 1 or not reward.has_free_product or reward.free_product_used:
                    return _failure("Free product reward not available")

                max_discount = self.settings_service.get_phase_free_product_value_cents(reward.phase)
                if not self.rewards_repo.mark_free_product_used(reward.id, conn=conn):
                    return _failure("Failed to apply free product reward")

                applied = min(discount_cents, max_discount)
                logger.info(f"Applied free product reward ({applied} cents) for user {user_id}")
                return RewardApplicationResult(
                    success=True,
                    reward_type=RewardType.FREE_PRODUCT,
                    discount_applied_cents=applied
                )

            if reward_type == RewardType.STORE_CREDIT:
                if reward.phase < 2 or reward.credit_remaining_cents <= 0:
                    return _failure("Store credit not available")

                applied = min(discount_cents, reward.credit_remaining_cents)
                remaining = self.rewards_repo.decrement_credit(reward.id, applied, conn=conn)
                if remaining is None:
                    return _failure("Failed to apply store credit")

                logger.info(f"Applied {applied} cents of store credit for user {user_id}, {remaining} left")
                return RewardApplicationResult(
                    success=True,
                    reward_type=RewardType.STORE_CREDIT,
                    discount_applied_cents=applied,
                    remaining_credit_cents=remaining
                )

        return _failure("Invalid reward type")
