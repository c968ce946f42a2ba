"""
Configuración centralizada de la aplicación
"""
import json
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # API Settings
    API_TITLE: str = "PurVita API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "E-commerce and multilevel network backend for PurVita"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    # Empty values are allowed at import time; they fail with a 503 when used.
    DATABASE_URL: str = ""
    SUPABASE_JWT_SECRET: str = ""

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:3000,https://yourdomain.com" or '["http://localhost:3000"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000"

    # Payments
    PAYMENT_WEBHOOK_SECRET: str = ""
    DEFAULT_CURRENCY: str = "USD"
    # Sandbox only: lets the browser confirm a recharge without the webhook
    PAYMENT_TEST_MODE: bool = False

    # Security
    CSRF_PROTECTION_ENABLED: bool = True
    WALLET_CHARGE_RATE_LIMIT: int = 5
    WALLET_CHARGE_RATE_WINDOW: int = 60

    # Wallet payouts
    WITHDRAWAL_DAILY_LIMIT_CENTS: int = 50_000_000

    # App settings / phase levels cache
    SETTINGS_CACHE_TTL_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
