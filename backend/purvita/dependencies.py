"""
Service providers for FastAPI routes

Routes receive services through Depends() so tests can replace them with
app.dependency_overrides.
"""
from functools import lru_cache

from purvita.repositories import AdvertisingScriptRepository, NetworkEarningsRepository, OrderRepository
from purvita.services.commission_calculator_service import CommissionCalculatorService
from purvita.services.order_creation_service import OrderCreationService
from purvita.services.phase_rewards_service import PhaseRewardsService
from purvita.services.profile_service import ProfileService
from purvita.services.referral_service import ReferralService
from purvita.services.settings_service import SettingsService
from purvita.services.wallet_service import WalletService


@lru_cache()
def get_settings_service() -> SettingsService:
    """One instance per process so the settings cache is shared"""
    return SettingsService()


def get_wallet_service() -> WalletService:
    return WalletService()


def get_commission_service() -> CommissionCalculatorService:
    return CommissionCalculatorService(settings_service=get_settings_service())


def get_order_creation_service() -> OrderCreationService:
    return OrderCreationService(commission_service=get_commission_service())


def get_rewards_service() -> PhaseRewardsService:
    return PhaseRewardsService(settings_service=get_settings_service())


def get_profile_service() -> ProfileService:
    return ProfileService(settings_service=get_settings_service())


def get_referral_service() -> ReferralService:
    return ReferralService()


def get_order_repository() -> OrderRepository:
    return OrderRepository()


def get_earnings_repository() -> NetworkEarningsRepository:
    return NetworkEarningsRepository()


def get_advertising_repository() -> AdvertisingScriptRepository:
    return AdvertisingScriptRepository()
