"""Tests for personal item, seller and settings services"""
import unittest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.config import config
from app.database import init_db
from app.models.personal_item import PersonalItemStatus
from app.models.seller import SellerPlatform
from app.services import item_service, personal_item_service, seller_service
from app.services.errors import ItemNotFoundError, ItemValidationError
from app.services.operation_log_service import get_operation_log_count
from app.services.settings_service import (
    SettingsSnapshot,
    get_or_create_settings,
    get_settings_snapshot,
    update_settings,
)

T0 = datetime(2024, 3, 1, 9, 0, 0)
T1 = datetime(2024, 3, 5, 12, 30, 0)

DEFAULTS = SettingsSnapshot(
    cny_to_php_rate=7.8,
    default_forwarder_rate=480,
    forwarder_buy_service_rate=8.6,
)


class DatabaseTestCase(unittest.TestCase):

    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        init_db(bind=self.engine)
        self.db = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()


class TestPersonalItemService(DatabaseTestCase):

    def create(self, **overrides):
        data = {
            "name": "New Balance 990v6",
            "category": "shoes",
            "size": "44",
            "seller": "Stone Island Store",
            "price_cny": 450,
            "weight_kg": 1.5,
            "order_date": T0,
        }
        data.update(overrides)
        return personal_item_service.create_personal_item(self.db, data, DEFAULTS, now=T0)

    def test_create_derives_costs(self):
        personal_item = self.create()
        self.assertEqual(personal_item.price_php, 3510.0)
        self.assertEqual(personal_item.forwarder_fee, 720.0)
        self.assertEqual(personal_item.status, PersonalItemStatus.ORDERED)

    def test_sale_fields_ignored(self):
        personal_item = self.create(selling_price=9999, customer_name="Ana")
        self.assertFalse(hasattr(personal_item, "selling_price"))
        self.assertFalse(hasattr(personal_item, "customer_name"))

    def test_same_validation_as_items(self):
        with self.assertRaises(ItemValidationError):
            self.create(category="clothes", size="XXXL")
        with self.assertRaises(ItemValidationError):
            self.create(is_forwarder_buy=True, forwarder_buy_rate_used=-1)

    def test_update_rederives(self):
        personal_item = self.create()
        updated = personal_item_service.update_personal_item(
            self.db, personal_item.id, {"weight_kg": 2, "size": "45"}, now=T1
        )
        self.assertEqual(updated.forwarder_fee, 960.0)
        self.assertEqual(updated.size, "45")
        self.assertEqual(updated.updated_at, T1)

    def test_rejected_update_logged(self):
        personal_item = self.create()
        with self.assertLogs("app.services.personal_item_service", level="WARNING") as logs:
            with self.assertRaises(ItemValidationError):
                personal_item_service.update_personal_item(self.db, personal_item.id, {"size": "abc"})
        self.assertIn("field=size", logs.output[0])

    def test_status_vocabulary(self):
        personal_item = self.create()
        updated = personal_item_service.update_personal_item_status(self.db, personal_item.id, "delivered_to_me")
        self.assertEqual(updated.status, PersonalItemStatus.DELIVERED_TO_ME)
        with self.assertRaises(ItemValidationError):
            personal_item_service.update_personal_item_status(self.db, personal_item.id, "delivered_to_customer")

    def test_list_and_delete(self):
        first = self.create()
        self.create(name="Arc'teryx Beta LT", category="clothes", size="L")
        self.assertEqual(len(personal_item_service.list_personal_items(self.db, category="clothes")), 1)
        self.assertEqual(len(personal_item_service.list_personal_items(self.db, search="balance")), 1)

        personal_item_service.delete_personal_item(self.db, first.id)
        with self.assertRaises(ItemNotFoundError):
            personal_item_service.get_personal_item(self.db, first.id)


class TestSellerService(DatabaseTestCase):

    def test_create_and_update(self):
        seller = seller_service.create_seller(self.db, {"name": "Top Dreamer", "platform": "weidian"})
        self.assertEqual(seller.platform, SellerPlatform.WEIDIAN)

        seller = seller_service.update_seller(self.db, seller.id, {"contact_info": "wx: topdreamer"})
        self.assertEqual(seller.contact_info, "wx: topdreamer")
        self.assertEqual(seller.name, "Top Dreamer")

    def test_validation(self):
        with self.assertRaises(ItemValidationError):
            seller_service.create_seller(self.db, {"name": "  "})
        with self.assertRaises(ItemValidationError):
            seller_service.create_seller(self.db, {"name": "Mystery", "platform": "ebay"})

    def test_not_found(self):
        with self.assertRaises(ItemNotFoundError):
            seller_service.update_seller(self.db, 7, {"notes": "x"})
        with self.assertRaises(ItemNotFoundError):
            seller_service.delete_seller(self.db, 7)

    def test_list_with_stats(self):
        seller_service.create_seller(self.db, {"name": "Top Dreamer", "contact_info": "WX: td"})
        seller_service.create_seller(self.db, {"name": "Philanthropist"})
        base = {"category": "shoes", "size": "42", "seller": "Top Dreamer", "price_cny": 100, "order_date": T0}
        item_service.create_item(
            self.db, {**base, "name": "Sold pair", "selling_price": 1000,
                      "status": "delivered_to_customer"}, DEFAULTS
        )
        item_service.create_item(
            self.db, {**base, "name": "Second sold", "selling_price": 1100.5,
                      "status": "delivered_to_customer"}, DEFAULTS
        )
        item_service.create_item(self.db, {**base, "name": "In transit"}, DEFAULTS)

        rows = {row["seller"].name: row for row in seller_service.list_sellers(self.db)}
        self.assertEqual(rows["Top Dreamer"]["total_items"], 3)
        self.assertEqual(rows["Top Dreamer"]["sold_items"], 2)
        # 220 + 320.5
        self.assertEqual(rows["Top Dreamer"]["total_profit"], 540.5)
        self.assertEqual(rows["Top Dreamer"]["avg_profit"], 270.25)
        self.assertEqual(rows["Philanthropist"]["total_items"], 0)
        self.assertEqual(rows["Philanthropist"]["avg_profit"], 0.0)

        found = seller_service.list_sellers(self.db, search="wx")
        self.assertEqual([row["seller"].name for row in found], ["Top Dreamer"])


class TestSettingsService(DatabaseTestCase):

    def test_seeded_from_config(self):
        settings = get_or_create_settings(self.db)
        self.assertEqual(settings.cny_to_php_rate, config.DEFAULT_CNY_TO_PHP_RATE)
        self.assertEqual(settings.default_forwarder_rate, config.DEFAULT_FORWARDER_RATE)
        self.assertEqual(get_or_create_settings(self.db).id, settings.id)

    def test_partial_update(self):
        get_or_create_settings(self.db)
        settings = update_settings(self.db, {"cny_to_php_rate": 8.1, "default_markup_min": None})
        self.assertEqual(settings.cny_to_php_rate, 8.1)
        self.assertEqual(settings.default_markup_min, config.DEFAULT_MARKUP_MIN)
        self.assertEqual(get_operation_log_count(self.db, operation_type="update_settings"), 1)

    def test_markup_range_validated(self):
        with self.assertRaises(ItemValidationError):
            update_settings(self.db, {"default_markup_min": 900, "default_markup_max": 800})
        with self.assertRaises(ItemValidationError):
            update_settings(self.db, {"cny_to_php_rate": 0})

    def test_snapshot_does_not_track_later_changes(self):
        snapshot = get_settings_snapshot(self.db)
        update_settings(self.db, {"cny_to_php_rate": 9.5})
        self.assertEqual(snapshot.cny_to_php_rate, config.DEFAULT_CNY_TO_PHP_RATE)
        self.assertEqual(get_settings_snapshot(self.db).cny_to_php_rate, 9.5)

    def test_existing_items_keep_their_rate(self):
        item = item_service.create_item(
            self.db,
            {"name": "Tee", "category": "clothes", "size": "S", "seller": "X", "price_cny": 50, "order_date": T0},
            get_settings_snapshot(self.db),
        )
        update_settings(self.db, {"cny_to_php_rate": 9.5})
        item = item_service.update_item(self.db, item.id, {"notes": "restocked"})
        self.assertEqual(item.exchange_rate_used, config.DEFAULT_CNY_TO_PHP_RATE)


if __name__ == '__main__':
    unittest.main()
