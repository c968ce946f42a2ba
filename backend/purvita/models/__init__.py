"""
Modelos de base de datos
"""
from .network import AdvertisingScript, AppSettings, AuditLog, Phase, PhaseLevel, PhaseReward, Profile, Subscription
from .order import NetworkCommission, Order, OrderItem
from .wallet import Wallet, WalletTransaction

__all__ = [
    "Profile",
    "Subscription",
    "Phase",
    "PhaseLevel",
    "AppSettings",
    "PhaseReward",
    "AuditLog",
    "AdvertisingScript",
    "Order",
    "OrderItem",
    "NetworkCommission",
    "Wallet",
    "WalletTransaction",
]
