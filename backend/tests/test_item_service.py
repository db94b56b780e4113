"""Tests for the item service against an in-memory database"""
import unittest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.database import init_db
from app.models.item import Item, ItemStatus, QcStatus
from app.services import item_service
from app.services.errors import InvalidTransitionError, ItemNotFoundError, ItemValidationError
from app.services.lifecycle import QcResolution
from app.services.operation_log_service import get_operation_logs
from app.services.settings_service import SettingsSnapshot

T0 = datetime(2024, 3, 1, 9, 0, 0)
T1 = datetime(2024, 3, 5, 12, 30, 0)
T2 = datetime(2024, 3, 9, 18, 0, 0)
T3 = datetime(2024, 4, 2, 8, 0, 0)

DEFAULTS = SettingsSnapshot(
    cny_to_php_rate=7.8,
    default_forwarder_rate=480,
    forwarder_buy_service_rate=8.6,
)


def item_data(**overrides):
    data = {
        "name": "Jordan 4 Military Black",
        "category": "shoes",
        "size": "42.5",
        "seller": "Top Dreamer",
        "batch": "LJR",
        "price_cny": 100,
        "order_date": T0,
    }
    data.update(overrides)
    return data


class ItemServiceTestCase(unittest.TestCase):
    """Fresh in-memory database per test"""

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

    def create(self, now=T0, **overrides):
        return item_service.create_item(self.db, item_data(**overrides), DEFAULTS, now=now)


class TestCreateItem(ItemServiceTestCase):

    def test_defaults_fill_missing_rates(self):
        item = self.create(weight_kg=2)
        self.assertEqual(item.exchange_rate_used, 7.8)
        self.assertEqual(item.forwarder_rate_per_kg, 480)
        self.assertEqual(item.price_php, 780.0)
        self.assertEqual(item.forwarder_fee, 960.0)
        self.assertEqual(item.total_cost, 1740.0)
        self.assertIsNone(item.profit)
        self.assertEqual(item.status, ItemStatus.ORDERED)
        self.assertEqual(item.qc_status, QcStatus.NOT_RECEIVED)
        self.assertIsNone(item.sold_date)

    def test_caller_rate_wins_over_default(self):
        item = self.create(exchange_rate_used=8.0)
        self.assertEqual(item.exchange_rate_used, 8.0)
        self.assertEqual(item.price_php, 800.0)

    def test_forwarder_buy_uses_default_rate(self):
        item = self.create(price_cny=1000, is_forwarder_buy=True)
        self.assertEqual(item.forwarder_buy_rate_used, 8.6)
        self.assertEqual(item.forwarder_buy_fee_php, 946.0)
        self.assertEqual(item.qc_service_fee_php, 150.0)

    def test_derived_fields_from_caller_are_ignored(self):
        item = self.create(price_php=1.0, total_cost=1.0, profit=99999)
        self.assertEqual(item.price_php, 780.0)
        self.assertEqual(item.total_cost, 780.0)
        self.assertIsNone(item.profit)

    def test_created_as_delivered_stamps_sold_date(self):
        item = self.create(status="delivered_to_customer", selling_price=1500, now=T1)
        self.assertEqual(item.sold_date, T1)
        self.assertEqual(item.profit, 720.0)

    def test_writes_operation_log(self):
        item = self.create()
        logs = get_operation_logs(self.db, target_type="item")
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].operation_type, "create_item")
        self.assertEqual(logs[0].target_id, item.id)

    def test_rejected_create_leaves_no_trace(self):
        with self.assertRaises(ItemValidationError):
            self.create(category="clothes", size="XXL")
        self.assertEqual(self.db.query(Item).count(), 0)
        self.assertEqual(get_operation_logs(self.db), [])

    def test_legacy_status_rejected(self):
        with self.assertRaises(ItemValidationError):
            self.create(status="sold")


class TestUpdateItem(ItemServiceTestCase):

    def test_merge_and_rederive(self):
        item = self.create(weight_kg=1)
        updated = item_service.update_item(self.db, item.id, {"price_cny": 200, "selling_price": 3000}, now=T1)
        self.assertEqual(updated.price_php, 1560.0)
        self.assertEqual(updated.forwarder_fee, 480.0)
        self.assertEqual(updated.total_cost, 2040.0)
        self.assertEqual(updated.profit, 960.0)
        self.assertEqual(updated.name, "Jordan 4 Military Black")
        self.assertEqual(updated.updated_at, T1)

    def test_snapshot_rate_kept_on_update(self):
        item = self.create()
        updated = item_service.update_item(self.db, item.id, {"notes": "box damaged"})
        self.assertEqual(updated.exchange_rate_used, 7.8)
        self.assertEqual(updated.price_php, 780.0)

    def test_forwarder_buy_toggle_off_clears_rate_and_fees(self):
        item = self.create(price_cny=1000, is_forwarder_buy=True)
        updated = item_service.update_item(self.db, item.id, {"is_forwarder_buy": False})
        self.assertIsNone(updated.forwarder_buy_rate_used)
        self.assertIsNone(updated.forwarder_buy_fee_php)
        self.assertIsNone(updated.qc_service_fee_php)
        self.assertEqual(updated.total_cost, 7800.0)

    def test_clearing_weight_clears_forwarder_fee(self):
        item = self.create(weight_kg=2)
        updated = item_service.update_item(self.db, item.id, {"weight_kg": None})
        self.assertIsNone(updated.forwarder_fee)
        self.assertEqual(updated.total_cost, 780.0)

    def test_category_change_revalidates_size(self):
        item = self.create()
        with self.assertRaises(ItemValidationError):
            item_service.update_item(self.db, item.id, {"category": "clothes"})
        updated = item_service.update_item(self.db, item.id, {"category": "clothes", "size": "l"})
        self.assertEqual(updated.size, "L")

    def test_rejected_update_changes_nothing(self):
        item = self.create()
        with self.assertRaises(ItemValidationError):
            item_service.update_item(self.db, item.id, {"price_cny": -5})
        self.db.refresh(item)
        self.assertEqual(item.price_cny, 100)
        self.assertEqual(len(get_operation_logs(self.db, operation_type="update_item")), 0)

    def test_legacy_status_rejected(self):
        item = self.create()
        with self.assertRaises(ItemValidationError):
            item_service.update_item(self.db, item.id, {"status": "delivered_to_me"})

    def test_not_found(self):
        with self.assertRaises(ItemNotFoundError):
            item_service.update_item(self.db, 999, {"name": "Ghost"})

    def test_qc_gl_advances_qc_sent_item(self):
        item = self.create(status="qc_sent")
        updated = item_service.update_item(self.db, item.id, {"qc_status": "gl"})
        self.assertEqual(updated.qc_status, QcStatus.GL)
        self.assertEqual(updated.status, ItemStatus.ITEM_SHIPOUT)

    def test_explicit_status_wins_over_qc_advance(self):
        item = self.create(status="qc_sent")
        updated = item_service.update_item(self.db, item.id, {"qc_status": "gl", "status": "qc_sent"})
        self.assertEqual(updated.status, ItemStatus.QC_SENT)


class TestStatusTransitions(ItemServiceTestCase):

    def test_sold_date_is_monotonic(self):
        item = self.create()
        item = item_service.update_item_status(self.db, item.id, "delivered_to_customer", now=T1)
        self.assertEqual(item.sold_date, T1)

        item = item_service.update_item_status(self.db, item.id, "refunded", now=T2)
        self.assertEqual(item.status, ItemStatus.REFUNDED)
        self.assertEqual(item.sold_date, T1)

        item = item_service.update_item_status(self.db, item.id, "delivered_to_customer", now=T3)
        self.assertEqual(item.sold_date, T1)

    def test_sold_date_via_update_item(self):
        item = self.create()
        item = item_service.update_item(self.db, item.id, {"status": "delivered_to_customer"}, now=T2)
        self.assertEqual(item.sold_date, T2)

    def test_status_change_logged(self):
        item = self.create()
        item_service.update_item_status(self.db, item.id, "qc_sent")
        log = get_operation_logs(self.db, operation_type="update_item_status")[0]
        self.assertEqual(log.operation_detail, {"from": "ordered", "to": "qc_sent"})

    def test_status_not_found(self):
        with self.assertRaises(ItemNotFoundError):
            item_service.update_item_status(self.db, 42, "qc_sent")

    def test_qc_gl_ships_item(self):
        item = self.create(status="qc_sent")
        item, transition = item_service.update_qc_status(self.db, item.id, "gl")
        self.assertEqual(transition.auto_status, ItemStatus.ITEM_SHIPOUT)
        self.assertEqual(item.status, ItemStatus.ITEM_SHIPOUT)

    def test_qc_rl_then_reorder(self):
        item = self.create(status="qc_sent")
        item, transition = item_service.update_qc_status(self.db, item.id, "rl")
        self.assertEqual(item.status, ItemStatus.QC_SENT)
        self.assertEqual(transition.choices, (QcResolution.REORDER, QcResolution.REFUND))

        item = item_service.resolve_qc(self.db, item.id, "reorder")
        self.assertEqual(item.status, ItemStatus.ORDERED)
        self.assertEqual(item.qc_status, QcStatus.NOT_RECEIVED)

    def test_qc_rl_then_refund(self):
        item = self.create(status="qc_sent")
        item_service.update_qc_status(self.db, item.id, "rl")
        item = item_service.resolve_qc(self.db, item.id, "refund")
        self.assertEqual(item.status, ItemStatus.REFUNDED)
        self.assertEqual(item.qc_status, QcStatus.RL)

    def test_resolve_without_rejection(self):
        item = self.create(status="qc_sent")
        with self.assertRaises(InvalidTransitionError):
            item_service.resolve_qc(self.db, item.id, "refund")


class TestBulkUpdate(ItemServiceTestCase):

    def test_missing_ids_skipped(self):
        first = self.create()
        third = self.create(name="Dunk Low Panda")
        missing = third.id + 100

        updated, skipped = item_service.bulk_update_status(
            self.db, [first.id, missing, third.id], "delivered_to_customer", now=T1
        )

        self.assertEqual(updated, [first.id, third.id])
        self.assertEqual(skipped, [missing])
        for item_id in (first.id, third.id):
            item = item_service.get_item(self.db, item_id)
            self.assertEqual(item.status, ItemStatus.DELIVERED_TO_CUSTOMER)
            self.assertEqual(item.sold_date, T1)

    def test_each_item_keeps_its_own_sold_date(self):
        sold = self.create(status="delivered_to_customer", now=T0)
        fresh = self.create(name="Dunk Low Panda")
        item_service.update_item_status(self.db, sold.id, "refunded", now=T1)

        item_service.bulk_update_status(self.db, [sold.id, fresh.id], "delivered_to_customer", now=T2)

        self.assertEqual(item_service.get_item(self.db, sold.id).sold_date, T0)
        self.assertEqual(item_service.get_item(self.db, fresh.id).sold_date, T2)

    def test_duplicate_ids_counted_once(self):
        item = self.create()
        updated, skipped = item_service.bulk_update_status(self.db, [item.id, item.id], "qc_sent")
        self.assertEqual(updated, [item.id])
        self.assertEqual(skipped, [])

    def test_single_log_entry(self):
        item = self.create()
        item_service.bulk_update_status(self.db, [item.id, 500], "qc_sent")
        logs = get_operation_logs(self.db, operation_type="bulk_update_status")
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].operation_detail["updated_ids"], [item.id])
        self.assertEqual(logs[0].operation_detail["skipped_ids"], [500])

    def test_legacy_status_rejected(self):
        item = self.create()
        with self.assertRaises(ItemValidationError):
            item_service.bulk_update_status(self.db, [item.id], "sold")

    def test_empty_ids_write_nothing(self):
        updated, skipped = item_service.bulk_update_status(self.db, [], "qc_sent")
        self.assertEqual((updated, skipped), ([], []))
        self.assertEqual(get_operation_logs(self.db, operation_type="bulk_update_status"), [])


class TestQueries(ItemServiceTestCase):

    def setUp(self):
        super().setUp()
        self.jordan = self.create(now=T0, selling_price=1500)
        self.dunk = self.create(
            now=T1, name="Dunk Low Panda", seller="Philanthropist", batch="GX",
            selling_price=900, customer_name="Mika"
        )
        self.tee = self.create(
            now=T2, name="Essentials Tee", category="clothes", size="M",
            seller="Philanthropist", batch=None, status="qc_sent"
        )

    def test_default_newest_first(self):
        names = [item.name for item in item_service.list_items(self.db)]
        self.assertEqual(names, ["Essentials Tee", "Dunk Low Panda", "Jordan 4 Military Black"])

    def test_filters(self):
        self.assertEqual(len(item_service.list_items(self.db, seller="Philanthropist")), 2)
        self.assertEqual(len(item_service.list_items(self.db, category="clothes")), 1)
        self.assertEqual([i.id for i in item_service.list_items(self.db, status="qc_sent")], [self.tee.id])

    def test_search_is_case_insensitive(self):
        self.assertEqual([i.id for i in item_service.list_items(self.db, search="PANDA")], [self.dunk.id])
        self.assertEqual([i.id for i in item_service.list_items(self.db, search="mika")], [self.dunk.id])
        self.assertEqual([i.id for i in item_service.list_items(self.db, search="ljr")], [self.jordan.id])

    def test_sort_puts_missing_values_last(self):
        ordered = item_service.list_items(self.db, sort_by="profit", sort_order="asc")
        self.assertEqual([i.id for i in ordered], [self.dunk.id, self.jordan.id, self.tee.id])
        ordered = item_service.list_items(self.db, sort_by="profit", sort_order="desc")
        self.assertEqual([i.id for i in ordered], [self.jordan.id, self.dunk.id, self.tee.id])

    def test_invalid_sort_field(self):
        with self.assertRaises(ItemValidationError):
            item_service.list_items(self.db, sort_by="name; drop table items")

    def test_recent_items(self):
        recent = item_service.get_recent_items(self.db, limit=2)
        self.assertEqual([i.id for i in recent], [self.tee.id, self.dunk.id])

    def test_count_by_status(self):
        self.assertEqual(item_service.count_items_by_status(self.db), {"ordered": 2, "qc_sent": 1})

    def test_delete(self):
        item_service.delete_item(self.db, self.dunk.id)
        with self.assertRaises(ItemNotFoundError):
            item_service.get_item(self.db, self.dunk.id)
        with self.assertRaises(ItemNotFoundError):
            item_service.delete_item(self.db, self.dunk.id)


if __name__ == '__main__':
    unittest.main()
