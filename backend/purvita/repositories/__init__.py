"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from purvita.repositories.order_repository import OrderRepository
from purvita.repositories.profile_repository import ProfileRepository
from purvita.repositories.subscription_repository import SubscriptionRepository
from purvita.repositories.phase_repository import PhaseRepository
from purvita.repositories.settings_repository import AppSettingsRepository
from purvita.repositories.network_earnings_repository import NetworkEarningsRepository
from purvita.repositories.wallet_repository import WalletRepository
from purvita.repositories.audit_log_repository import AuditLogRepository
from purvita.repositories.phase_rewards_repository import PhaseRewardsRepository
from purvita.repositories.advertising_script_repository import AdvertisingScriptRepository

__all__ = [
    'OrderRepository',
    'ProfileRepository',
    'SubscriptionRepository',
    'PhaseRepository',
    'AppSettingsRepository',
    'NetworkEarningsRepository',
    'WalletRepository',
    'AuditLogRepository',
    'PhaseRewardsRepository',
    'AdvertisingScriptRepository',
]
