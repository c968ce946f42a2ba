"""
Order Domain Models

Represents paid orders created from gateway or wallet payments.
These are the single source of truth for order data structure.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentGateway(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    WALLET = "wallet"


class PurchaseSource(str, Enum):
    MAIN_STORE = "main_store"
    AFFILIATE_STORE = "affiliate_store"


AFFILIATE_STORE_CHANNEL = PurchaseSource.AFFILIATE_STORE.value

# Checkout metadata keys that attribute a sale, in both client spellings
AFFILIATE_METADATA_KEYS = (
    "affiliateId", "affiliate_id",
    "affiliateReferralCode", "affiliate_referral_code",
    "saleChannel", "sale_channel",
)


def read_metadata_string(metadata: Optional[Dict[str, Any]], *keys: str) -> Optional[str]:
    """First non-empty string value among keys"""
    if not metadata:
        return None
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class CartItem(BaseModel):
    """Line item as received from checkout / payment metadata"""

    product_id: str = Field(..., description="Product ID")
    product_name: Optional[str] = Field(None, description="Product name at purchase time")
    quantity: int = Field(..., description="Units purchased", ge=1)
    price_cents: int = Field(..., description="Unit price in cents", ge=0)


class OrderItem(BaseModel):
    """
    Order Item domain model - a stored line item

    Fields:
        id: Order item ID
        order_id: Parent order ID
        product_id: Reference to product catalog
        qty: Number of units ordered
        price_cents: Price per unit in cents
    """

    id: str = Field(..., description="Order item ID")
    order_id: str = Field(..., description="Parent order ID")
    product_id: str = Field(..., description="Product ID")
    qty: int = Field(..., description="Quantity ordered", ge=1)
    price_cents: int = Field(..., description="Price per unit in cents", ge=0)

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total_cents(self) -> int:
        return self.qty * self.price_cents


class Order(BaseModel):
    """
    Order domain model - a paid customer order

    Fields:
        id: Order ID (uuid)
        user_id: Buyer
        status: Order status ('paid' when created from a payment)
        total_cents / tax_cents / shipping_cents / discount_cents: Amounts in cents
        currency: ISO currency code
        gateway: Payment gateway (stripe, paypal, wallet)
        gateway_transaction_id: Gateway reference, unique per order
        purchase_source: main_store or affiliate_store
        metadata: Payment and affiliate metadata
        items: Order items (one-to-many)
    """

    id: str = Field(..., description="Order ID")
    user_id: str = Field(..., description="Buyer user ID")
    status: str = Field(..., description="Order status")
    total_cents: int = Field(..., description="Total in cents", ge=0)
    tax_cents: int = Field(0, description="Tax in cents", ge=0)
    shipping_cents: int = Field(0, description="Shipping in cents", ge=0)
    discount_cents: int = Field(0, description="Discount in cents", ge=0)
    currency: str = Field("USD", description="Currency code")
    gateway: Optional[str] = Field(None, description="Payment gateway")
    gateway_transaction_id: Optional[str] = Field(None, description="Gateway transaction ID")
    purchase_source: Optional[str] = Field(None, description="main_store or affiliate_store")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Order metadata")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    items: List[OrderItem] = Field(default_factory=list, description="Order items")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    @property
    def affiliate_id(self) -> Optional[str]:
        value = self.metadata.get("affiliate_id") or self.metadata.get("affiliateId")
        return value if isinstance(value, str) else None

    @property
    def total_quantity(self) -> int:
        return sum(item.qty for item in self.items)

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary with computed fields"""
        data = self.model_dump(mode="json")
        data["is_paid"] = self.is_paid
        data["total_quantity"] = self.total_quantity
        data["affiliate_id"] = self.affiliate_id
        return data


class OrderCreationParams(BaseModel):
    """Input of OrderCreationService.create_order_from_payment"""

    user_id: str
    total_cents: int = Field(..., ge=0)
    currency: str = "USD"
    gateway: PaymentGateway
    gateway_transaction_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    cart_items: List[CartItem] = Field(default_factory=list)
    tax_cents: int = Field(0, ge=0)
    shipping_cents: int = Field(0, ge=0)
    discount_cents: int = Field(0, ge=0)

    @property
    def affiliate_id(self) -> Optional[str]:
        return read_metadata_string(self.metadata, "affiliateId", "affiliate_id")

    @property
    def affiliate_referral_code(self) -> Optional[str]:
        return read_metadata_string(self.metadata, "affiliateReferralCode", "affiliate_referral_code")

    @property
    def sale_channel(self) -> Optional[str]:
        return read_metadata_string(self.metadata, "saleChannel", "sale_channel")


class OrderCreationResult(BaseModel):
    order_id: str
    commissions_created: int = 0
    affiliate_id: Optional[str] = None
    duplicate: bool = False
