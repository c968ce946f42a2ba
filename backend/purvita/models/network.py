"""
Modelos de la red de afiliados: perfiles, suscripciones y fases
"""
from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, NUMERIC, String, Text, text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func

from purvita.core.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=False), primary_key=True)
    email = Column(String(255), index=True)
    name = Column(String(120))
    phone = Column(String(40))
    address = Column(String(255))
    city = Column(String(120))
    country = Column(String(2))

    # Red
    referral_code = Column(String(64), unique=True)
    referred_by = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), index=True)
    sponsor_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    waitlisted = Column(Boolean, nullable=False, server_default="false")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'unpaid', 'past_due', 'canceled')", name="subscriptions_status_check"
        ),
    )


class Phase(Base):
    """Fase (rango MLM) actual de cada usuario"""
    __tablename__ = "phases"

    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), primary_key=True)
    phase = Column(Integer, nullable=False, server_default="0")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PhaseLevel(Base):
    __tablename__ = "phase_levels"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    level = Column(Integer, nullable=False, unique=True)
    name = Column(String(120), nullable=False)
    name_en = Column(String(120))
    name_es = Column(String(120))

    # Tasas (0.15 == 15%)
    commission_rate = Column(NUMERIC(6, 4), nullable=False, server_default="0")
    subscription_discount_rate = Column(NUMERIC(6, 4), nullable=False, server_default="0")
    affiliate_sponsor_commission_rate = Column(NUMERIC(6, 4), nullable=False, server_default="0")

    # Recompensas
    credit_cents = Column(Integer, nullable=False, server_default="0")
    free_product_value_cents = Column(Integer)

    is_active = Column(Boolean, nullable=False, server_default="true")
    display_order = Column(Integer, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AppSettings(Base):
    """Configuración global (una sola fila, id='global')"""
    __tablename__ = "app_settings"

    id = Column(String(20), primary_key=True, server_default="global")
    currency = Column(String(3), nullable=False, server_default="USD")
    currencies = Column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
    payout_frequency = Column(String(20), nullable=False, server_default="monthly")
    max_members_per_level = Column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
    auto_advance_enabled = Column(Boolean, nullable=False, server_default="false")
    ecommerce_commission_rate = Column(NUMERIC(6, 4), nullable=False, server_default="0.08")
    team_levels_visible = Column(Integer, nullable=False, server_default="2")
    direct_sponsor_commission_rate = Column(NUMERIC(6, 4), nullable=False, server_default="0")
    network_commission_rate = Column(NUMERIC(6, 4), nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PhaseReward(Base):
    __tablename__ = "phase_rewards"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False, index=True)
    phase = Column(Integer, nullable=False)
    has_free_product = Column(Boolean, nullable=False, server_default="false")
    free_product_used = Column(Boolean, nullable=False, server_default="false")
    credit_remaining_cents = Column(Integer, nullable=False, server_default="0")
    expires_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("credit_remaining_cents >= 0", name="phase_rewards_credit_non_negative"),
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    action = Column(String(80), nullable=False, index=True)
    entity_type = Column(String(60), nullable=False)
    entity_id = Column(String(255))
    actor_id = Column(UUID(as_uuid=False))
    metadata_ = Column("metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class AdvertisingScript(Base):
    __tablename__ = "advertising_scripts"

    id = Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))
    name = Column(String(120), nullable=False)
    provider = Column(String(60))
    position = Column(String(20), nullable=False, server_default="head")
    script_content = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "position IN ('head', 'body_start', 'body_end')", name="advertising_scripts_position_check"
        ),
    )
