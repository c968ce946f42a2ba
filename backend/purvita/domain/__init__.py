"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.
"""
from purvita.domain.order import Order, OrderItem, CartItem, OrderCreationParams, OrderCreationResult
from purvita.domain.network import Profile, Subscription, PhaseLevel, AppSettings
from purvita.domain.commission import CommissionEntry, NetworkCommission, NetworkEarningsSummary
from purvita.domain.wallet import Wallet, WalletTransaction, WalletReason, WalletTransactionResult
from purvita.domain.rewards import PhaseReward, RewardType
from purvita.domain.advertising import AdvertisingScript

__all__ = [
    'Order', 'OrderItem', 'CartItem', 'OrderCreationParams', 'OrderCreationResult',
    'Profile', 'Subscription', 'PhaseLevel', 'AppSettings',
    'CommissionEntry', 'NetworkCommission', 'NetworkEarningsSummary',
    'Wallet', 'WalletTransaction', 'WalletReason', 'WalletTransactionResult',
    'PhaseReward', 'RewardType',
    'AdvertisingScript',
]
