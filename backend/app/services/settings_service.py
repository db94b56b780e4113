"""Settings service: default rates and markup targets"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.config import config
from app.models.settings import Settings
from app.services.cost_engine import MarkupTargets
from app.services.errors import ItemValidationError
from app.services.operation_log_service import create_operation_log
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "cny_to_php_rate",
    "forwarder_buy_service_rate",
    "default_forwarder_rate",
    "default_markup_min",
    "default_markup_max",
)


@dataclass(frozen=True)
class SettingsSnapshot:
    """Immutable copy of the settings row, passed into item creation"""
    cny_to_php_rate: float
    default_forwarder_rate: float
    forwarder_buy_service_rate: Optional[float] = None
    default_markup_min: float = 700.0
    default_markup_max: float = 850.0

    @classmethod
    def from_model(cls, settings: Settings) -> "SettingsSnapshot":
        return cls(
            cny_to_php_rate=settings.cny_to_php_rate,
            default_forwarder_rate=settings.default_forwarder_rate,
            forwarder_buy_service_rate=settings.forwarder_buy_service_rate,
            default_markup_min=settings.default_markup_min,
            default_markup_max=settings.default_markup_max,
        )

    @property
    def markup_targets(self) -> MarkupTargets:
        return MarkupTargets(
            min_markup=self.default_markup_min,
            max_markup=self.default_markup_max,
        )


def get_or_create_settings(db: Session) -> Settings:
    """Get the settings row, seeding it from config on first access"""
    settings = db.query(Settings).first()
    if not settings:
        settings = Settings(
            cny_to_php_rate=config.DEFAULT_CNY_TO_PHP_RATE,
            forwarder_buy_service_rate=config.DEFAULT_FORWARDER_BUY_SERVICE_RATE,
            default_forwarder_rate=config.DEFAULT_FORWARDER_RATE,
            default_markup_min=config.DEFAULT_MARKUP_MIN,
            default_markup_max=config.DEFAULT_MARKUP_MAX,
        )
        db.add(settings)
        db.commit()
        db.refresh(settings)
        logger.info("Settings initialized with defaults from config")
    return settings


def get_settings_snapshot(db: Session) -> SettingsSnapshot:
    return SettingsSnapshot.from_model(get_or_create_settings(db))


def update_settings(db: Session, updates: Dict[str, Any]) -> Settings:
    """Apply a partial update; rates must stay positive and markup min <= max"""
    settings = get_or_create_settings(db)
    updates = {key: value for key, value in updates.items() if key in SETTINGS_FIELDS and value is not None}

    for key in ("cny_to_php_rate", "forwarder_buy_service_rate", "default_forwarder_rate"):
        if key in updates and updates[key] <= 0:
            raise ItemValidationError(f"{key} must be greater than 0", field=key)

    markup_min = updates.get("default_markup_min", settings.default_markup_min)
    markup_max = updates.get("default_markup_max", settings.default_markup_max)
    if markup_min > markup_max:
        raise ItemValidationError("Markup minimum must not exceed markup maximum", field="default_markup_min")

    for key, value in updates.items():
        setattr(settings, key, value)
    settings.updated_at = utcnow()

    create_operation_log(db, "update_settings", "settings", settings.id, updates)
    db.commit()
    db.refresh(settings)
    logger.info(f"Settings updated: {sorted(updates)}")
    return settings
