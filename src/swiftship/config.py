"""Application configuration."""

from decimal import Decimal
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SWIFTSHIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "SwiftShip"
    debug: bool = False
    secret_key: str = "change-me-in-production"

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/swiftship.db"

    # Paths
    package_dir: Path = Path(__file__).parent
    routes_dir: Path = package_dir / "transport"
    templates_dir: Path = package_dir / "templates"
    data_dir: Path = Path("data")

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Admin account
    admin_email: str = "admin@swiftship.com"
    admin_password: SecretStr = SecretStr("admin123")
    admin_name: str = "Admin User"

    # Tracking
    tracking_number_prefix: str = "SS"
    tracking_number_min_length: int = 6
    atomic_transitions: bool = True

    # Shipments
    default_delivery_days: int = 3
    recent_shipments_limit: int = 5

    # Pricing defaults, used when no pricing rule applies
    currency: str = "USD"
    default_base_price: Decimal = Decimal("15")
    default_price_per_kg: Decimal = Decimal("5")
    default_insurance_rate: Decimal = Decimal("0.02")
    express_multiplier: Decimal = Decimal("1.5")
    same_day_multiplier: Decimal = Decimal("2.0")


settings = Settings()

# Ensure data directory exists
settings.data_dir.mkdir(parents=True, exist_ok=True)
