"""
Custom exception classes for the application.

Domain-specific exceptions carry a message plus structured details. The API
layer maps each class to an HTTP status code (see ``status_code``).
"""
from typing import Optional


class ApplicationError(Exception):
    """Base exception for all application errors"""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ApplicationError):
    """Raised when a required setting is missing"""

    status_code = 503

    def __init__(self, message: str, missing_keys: Optional[list] = None):
        details = {"missing_keys": missing_keys} if missing_keys else {}
        super().__init__(message, details)


class ValidationError(ApplicationError):
    """Raised when business validation fails"""

    status_code = 400

    def __init__(self, message: str, invalid_fields: Optional[dict] = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details)


class NotFoundError(ApplicationError):
    """Raised when a requested entity does not exist"""

    status_code = 404

    def __init__(self, entity: str, entity_id: str, message: Optional[str] = None):
        details = {"entity": entity, "id": str(entity_id)}
        super().__init__(message or f"{entity} {entity_id} not found", details)


# ----------------------------------------------------------------------------
# Affiliate validation (fraud checks on order creation)
# ----------------------------------------------------------------------------

class AffiliateValidationError(ApplicationError):
    """Raised when the affiliate reference of an order is not acceptable"""

    status_code = 400

    def __init__(self, message: str, affiliate_id: Optional[str] = None):
        details = {"affiliate_id": affiliate_id} if affiliate_id else {}
        super().__init__(message, details)


class SelfReferralError(AffiliateValidationError):
    def __init__(self, affiliate_id: str):
        super().__init__("Self-referral purchases are not allowed", affiliate_id)


class InvalidAffiliateError(AffiliateValidationError):
    def __init__(self, affiliate_id: str):
        super().__init__("Invalid affiliate ID", affiliate_id)


class InactiveAffiliateError(AffiliateValidationError):
    def __init__(self, affiliate_id: str):
        super().__init__("Affiliate does not have an active subscription", affiliate_id)


class AffiliateMismatchError(AffiliateValidationError):
    def __init__(self, affiliate_id: str):
        super().__init__("Affiliate ID mismatch", affiliate_id)


# ----------------------------------------------------------------------------
# Ledger
# ----------------------------------------------------------------------------

class WalletError(ApplicationError):
    """Base class for wallet ledger errors"""

    status_code = 400

    def __init__(self, message: str, user_id: Optional[str] = None, **details):
        if user_id:
            details["user_id"] = user_id
        super().__init__(message, details)


class InsufficientBalanceError(WalletError):
    def __init__(self, user_id: str, balance_cents: int = 0, requested_cents: int = 0,
                 message: str = "Insufficient wallet balance"):
        super().__init__(
            message,
            user_id,
            balance_cents=balance_cents,
            requested_cents=requested_cents,
        )


class WalletNotFoundError(WalletError):
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__("Wallet not found", user_id)


class WithdrawalLimitExceededError(WalletError):
    def __init__(self, user_id: str, remaining_limit_cents: int, requested_cents: int):
        super().__init__(
            "Daily withdrawal limit exceeded",
            user_id,
            remaining_limit_cents=remaining_limit_cents,
            requested_cents=requested_cents,
        )


# ----------------------------------------------------------------------------
# Orders & commissions
# ----------------------------------------------------------------------------

class OrderCreationError(ApplicationError):
    """Raised when the order row itself cannot be stored"""

    status_code = 500


class CommissionLockedError(ApplicationError):
    """Raised when commissions of an order were already (partly) withdrawn"""

    status_code = 409

    def __init__(self, order_id: str):
        super().__init__(
            f"Commissions for order {order_id} were already transferred and cannot be recalculated",
            {"order_id": order_id},
        )
