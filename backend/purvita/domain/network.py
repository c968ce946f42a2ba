"""
Network Domain Models

Profiles, subscriptions, phase levels and global app settings that drive
affiliate validation and commission rates.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Profile(BaseModel):
    """User profile with its position in the referral tree"""

    id: str = Field(..., description="User ID")
    email: Optional[str] = Field(None, description="Email")
    name: Optional[str] = Field(None, description="Display name")
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    referral_code: Optional[str] = Field(None, description="Code other users register with")
    referred_by: Optional[str] = Field(None, description="Sponsor user ID")
    sponsor_id: Optional[str] = Field(None, description="Sponsor user ID (legacy column)")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def upline_sponsor_id(self) -> Optional[str]:
        """referred_by wins; sponsor_id is the legacy fallback"""
        return self.referred_by or self.sponsor_id


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=120)
    phone: Optional[str] = Field(None, max_length=40)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=120)
    country: Optional[str] = Field(None, min_length=2, max_length=2)


class Subscription(BaseModel):
    id: str
    user_id: str
    status: str = Field(..., description="active, unpaid, past_due, canceled")
    waitlisted: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_active_and_not_waitlisted(self) -> bool:
        return self.is_active and not self.waitlisted


class PhaseLevelBase(BaseModel):
    level: int = Field(..., ge=0, le=20)
    name: str = Field(..., min_length=1)
    name_en: Optional[str] = None
    name_es: Optional[str] = None
    commission_rate: Decimal = Field(Decimal("0"), ge=0, le=1, description="Seller's own ecommerce earnings rate")
    subscription_discount_rate: Decimal = Field(
        Decimal("0"), ge=0, le=1,
        description="Group gain paid to the direct sponsor on affiliate-store sales"
    )
    affiliate_sponsor_commission_rate: Decimal = Field(Decimal("0"), ge=0, le=1)
    credit_cents: int = Field(0, ge=0, description="Store credit granted at this phase")
    free_product_value_cents: Optional[int] = Field(None, ge=0)
    is_active: bool = True
    display_order: int = 0


class PhaseLevelCreate(PhaseLevelBase):
    pass


class PhaseLevelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    name_en: Optional[str] = None
    name_es: Optional[str] = None
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    subscription_discount_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    affiliate_sponsor_commission_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    credit_cents: Optional[int] = Field(None, ge=0)
    free_product_value_cents: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class PhaseLevel(PhaseLevelBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def effective_free_product_value_cents(self) -> int:
        if self.free_product_value_cents is not None:
            return self.free_product_value_cents
        return 6500 if self.level == 1 else 0


class LevelCapacity(BaseModel):
    level: int = Field(..., ge=1, le=10)
    max_members: int = Field(..., ge=0)


class CurrencyAssignment(BaseModel):
    code: str = Field(..., min_length=3, max_length=3)
    country_codes: List[str] = Field(default_factory=list)

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.upper()

    @field_validator("country_codes")
    @classmethod
    def upper_countries(cls, value: List[str]) -> List[str]:
        for code in value:
            if len(code) != 2:
                raise ValueError(f"Invalid country code: {code}")
        return [code.upper() for code in value]


class AppSettingsBase(BaseModel):
    """Admin-editable global settings"""

    max_members_per_level: List[LevelCapacity] = Field(default_factory=list)
    payout_frequency: Literal["weekly", "biweekly", "monthly"] = "monthly"
    currency: str = Field("USD", min_length=3, max_length=3)
    currencies: List[CurrencyAssignment] = Field(default_factory=list)
    auto_advance_enabled: bool = False
    ecommerce_commission_rate: Decimal = Field(Decimal("0.08"), ge=0, le=1)
    team_levels_visible: int = Field(2, ge=1, le=10)
    direct_sponsor_commission_rate: Decimal = Field(Decimal("0"), ge=0, le=1)
    network_commission_rate: Decimal = Field(Decimal("0"), ge=0, le=1)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.upper()


class AppSettingsUpdate(AppSettingsBase):
    """Admin write of the global settings; currency rules are enforced here"""

    @model_validator(mode="after")
    def check_currencies(self):
        seen_codes = set()
        seen_countries = set()
        has_global_currency = False

        for entry in self.currencies:
            if entry.code in seen_codes:
                raise ValueError("Currency codes must be unique.")
            seen_codes.add(entry.code)

            if not entry.country_codes:
                if has_global_currency:
                    raise ValueError("Only one currency can target all remaining countries.")
                has_global_currency = True

            for country in set(entry.country_codes):
                if country in seen_countries:
                    raise ValueError("Each country can only be assigned to one currency.")
                seen_countries.add(country)

        if self.currencies and self.currency not in seen_codes:
            raise ValueError("The base currency must be included in the currency list.")

        return self


class AppSettings(AppSettingsBase):
    """Stored global settings, read back without write-time checks"""

    id: str = "global"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReferralChainReport(BaseModel):
    valid: bool
    max_depth: int
    chain_length: int
    errors: List[str] = Field(default_factory=list)
