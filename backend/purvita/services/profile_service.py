"""
Profile Service
Aggregates the profile page: account, phase, subscription, wallet, orders, earnings
"""
import logging
from typing import Any, Dict, Optional

from purvita.core.exceptions import NotFoundError, ValidationError
from purvita.domain.network import Profile, ProfileUpdate
from purvita.repositories import (
    NetworkEarningsRepository, OrderRepository, PhaseRepository, ProfileRepository, SubscriptionRepository,
)
from purvita.services.phase_rewards_service import PhaseRewardsService
from purvita.services.settings_service import SettingsService
from purvita.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 5


class ProfileService:

    def __init__(
        self,
        profile_repo: Optional[ProfileRepository] = None,
        phase_repo: Optional[PhaseRepository] = None,
        subscription_repo: Optional[SubscriptionRepository] = None,
        order_repo: Optional[OrderRepository] = None,
        earnings_repo: Optional[NetworkEarningsRepository] = None,
        wallet_service: Optional[WalletService] = None,
        rewards_service: Optional[PhaseRewardsService] = None,
        settings_service: Optional[SettingsService] = None
    ):
        self.profile_repo = profile_repo or ProfileRepository()
        self.phase_repo = phase_repo or PhaseRepository()
        self.subscription_repo = subscription_repo or SubscriptionRepository()
        self.order_repo = order_repo or OrderRepository()
        self.earnings_repo = earnings_repo or NetworkEarningsRepository()
        self.wallet_service = wallet_service or WalletService()
        self.settings_service = settings_service or SettingsService()
        self.rewards_service = rewards_service or PhaseRewardsService(settings_service=self.settings_service)

    def get_summary(self, user_id: str) -> Dict[str, Any]:
        profile = self.profile_repo.find_by_id(user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)

        subscription = self.subscription_repo.find_latest(user_id)
        currency = self.settings_service.get_app_settings().currency
        rewards = self.rewards_service.get_active_rewards(user_id)

        return {
            "profile": profile.model_dump(mode="json"),
            "phase": self.phase_repo.get_user_phase(user_id),
            "subscription": subscription.model_dump(mode="json") if subscription else None,
            "wallet": {
                "balance_cents": self.wallet_service.get_balance(user_id),
                "currency": currency,
            },
            "recent_orders": [
                order.to_dict() for order in self.order_repo.find_recent_by_user(user_id, RECENT_ORDERS_LIMIT)
            ],
            "network_earnings": self.earnings_repo.fetch_available_summary(
                user_id, default_currency=currency
            ).model_dump(mode="json"),
            "rewards": rewards.model_dump(mode="json") if rewards else None,
        }

    def update_profile(self, user_id: str, update: ProfileUpdate) -> Profile:
        fields = update.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No profile fields to update")

        if "country" in fields and fields["country"]:
            fields["country"] = fields["country"].upper()

        profile = self.profile_repo.update(user_id, fields)
        if profile is None:
            raise NotFoundError("Profile", user_id)

        logger.info(f"Updated profile {user_id}: {', '.join(sorted(fields))}")
        return profile
