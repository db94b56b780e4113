"""Create tables and seed the settings row"""
from app.database import SessionLocal, init_db
from app.models.settings import Settings
from app.services.settings_service import get_or_create_settings


def init_settings():
    """Create the settings row from config defaults if it does not exist"""
    init_db()
    db = SessionLocal()
    try:
        existing = db.query(Settings).first()
        if existing:
            print("Settings already exist, skipping")
            print(f"CNY to PHP rate: {existing.cny_to_php_rate}, forwarder rate: {existing.default_forwarder_rate}/kg")
            return

        settings = get_or_create_settings(db)
        print("=" * 50)
        print("Settings created")
        print(f"CNY to PHP rate: {settings.cny_to_php_rate}")
        print(f"Forwarder rate: {settings.default_forwarder_rate}/kg")
        print(f"Forwarder buy service rate: {settings.forwarder_buy_service_rate}")
        print(f"Markup target: {settings.default_markup_min} - {settings.default_markup_max}")
        print("=" * 50)
    finally:
        db.close()


if __name__ == "__main__":
    init_settings()
