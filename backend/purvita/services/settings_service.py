"""
Settings Service
App settings and phase levels with an in-process TTL cache

Commission and reward calculations read these on every order, so both are
cached for SETTINGS_CACHE_TTL_SECONDS and invalidated after admin writes.
"""
import logging
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from purvita.core.config import settings
from purvita.core.exceptions import NotFoundError
from purvita.domain.network import (
    AppSettings, AppSettingsUpdate, PhaseLevel, PhaseLevelCreate, PhaseLevelUpdate,
)
from purvita.repositories import AppSettingsRepository, AuditLogRepository, PhaseRepository

logger = logging.getLogger(__name__)

APP_SETTINGS_KEY = "app_settings"
PHASE_LEVELS_KEY = "phase_levels"


class SettingsService:
    """
    Service for global settings and the phase level catalog

    This service handles:
    - Cached reads of app settings and active phase levels
    - Per-phase rate and reward lookups
    - Admin writes (with audit log and cache invalidation)
    """

    def __init__(
        self,
        settings_repo: Optional[AppSettingsRepository] = None,
        phase_repo: Optional[PhaseRepository] = None,
        audit_repo: Optional[AuditLogRepository] = None,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.settings_repo = settings_repo or AppSettingsRepository()
        self.phase_repo = phase_repo or PhaseRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.ttl_seconds = settings.SETTINGS_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._cache: Dict[str, tuple] = {}

    def _cached(self, key: str, loader: Callable[[], Any]) -> Any:
        entry = self._cache.get(key)
        now = self._clock()
        if entry and entry[0] > now:
            return entry[1]

        value = loader()
        self._cache[key] = (now + self.ttl_seconds, value)
        return value

    def invalidate(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_app_settings(self) -> AppSettings:
        def load() -> AppSettings:
            stored = self.settings_repo.get()
            if stored is None:
                logger.info("No app settings stored, using defaults")
                return AppSettings(currency=settings.DEFAULT_CURRENCY)
            return stored

        return self._cached(APP_SETTINGS_KEY, load)

    def get_phase_levels(self) -> List[PhaseLevel]:
        return self._cached(PHASE_LEVELS_KEY, lambda: self.phase_repo.list_levels(active_only=True))

    def get_phase_level(self, phase: int) -> Optional[PhaseLevel]:
        for level in self.get_phase_levels():
            if level.level == phase:
                return level
        return None

    def get_group_gain_rates(self) -> Dict[int, Decimal]:
        """Level -> rate paid to the direct sponsor on affiliate-store sales"""
        return {level.level: level.subscription_discount_rate for level in self.get_phase_levels()}

    def get_phase_commission_rate(self, phase: int) -> Decimal:
        level = self.get_phase_level(phase)
        return level.commission_rate if level else Decimal("0")

    def get_phase_credit_cents(self, phase: int) -> int:
        level = self.get_phase_level(phase)
        return level.credit_cents if level else 0

    def get_phase_free_product_value_cents(self, phase: int) -> int:
        level = self.get_phase_level(phase)
        if level:
            return level.effective_free_product_value_cents
        return 6500 if phase == 1 else 0

    # ------------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------------

    def _audit(self, action: str, entity_id: Optional[str], metadata: dict, actor_id: Optional[str]) -> None:
        try:
            self.audit_repo.log_action(action, "settings", entity_id, metadata, actor_id)
        except Exception as e:
            logger.error(f"Failed to record audit action {action}: {e}")

    def update_app_settings(self, update: AppSettingsUpdate, actor_id: Optional[str] = None) -> AppSettings:
        saved = self.settings_repo.upsert(update)
        self.invalidate()
        self._audit("APP_SETTINGS_UPDATED", saved.id, update.model_dump(mode="json"), actor_id)
        return saved

    def list_phase_levels(self) -> List[PhaseLevel]:
        return self.phase_repo.list_levels()

    def create_phase_level(self, data: PhaseLevelCreate, actor_id: Optional[str] = None) -> PhaseLevel:
        level = self.phase_repo.create_level(data)
        self.invalidate()
        self._audit("PHASE_LEVEL_CREATED", level.id, data.model_dump(mode="json"), actor_id)
        return level

    def update_phase_level(
        self, level_id: str, data: PhaseLevelUpdate, actor_id: Optional[str] = None
    ) -> PhaseLevel:
        level = self.phase_repo.update_level(level_id, data)
        if level is None:
            raise NotFoundError("Phase level", level_id)
        self.invalidate()
        self._audit("PHASE_LEVEL_UPDATED", level_id, data.model_dump(mode="json", exclude_unset=True), actor_id)
        return level

    def delete_phase_level(self, level_id: str, actor_id: Optional[str] = None) -> None:
        if not self.phase_repo.delete_level(level_id):
            raise NotFoundError("Phase level", level_id)
        self.invalidate()
        self._audit("PHASE_LEVEL_DELETED", level_id, {}, actor_id)
