# Overview: Pytest coverage for the inventory record store, write path and reconciliation.

import logging
from decimal import Decimal

import pytest

from conftest import days_ago
from salonpos.models import InventoryRecord, Item
from salonpos.services import inventory_service
from salonpos.services.costing import ADJUSTMENT, PURCHASE, RETURN, USAGE
from salonpos.services.ledger_service import get_ledger, set_ledger
from salonpos.services.costing import LedgerSnapshot
from salonpos.validation import InvalidOperationError, NotFoundError, ValidationError


def purchase(item, quantity, unit_cost, when=None):
    return inventory_service.record_movement(
        item_id=item.id,
        movement_type=PURCHASE,
        quantity=quantity,
        unit_cost=unit_cost,
        occurred_at=when,
    )


def usage(item, quantity, when=None):
    return inventory_service.record_movement(
        item_id=item.id, movement_type=USAGE, quantity=quantity, occurred_at=when
    )


class TestRecordMovement:
    def test_purchase_updates_ledger_and_stores_costs(self, db_session, product):
        record = purchase(product, 100, "8")

        assert record.id is not None
        assert record.unit_cost == Decimal("8.0000")
        assert record.total_cost == Decimal("800.00")
        assert record.cogs_total == Decimal("0.00")

        ledger = get_ledger(product.id)
        assert ledger.stock == 100
        assert ledger.average_cost == Decimal("8.0000")

    def test_usage_priced_at_average_cost(self, db_session, product):
        purchase(product, 100, "8")
        purchase(product, 50, "10")

        record = inventory_service.record_movement(
            item_id=product.id, movement_type=USAGE, quantity=30, unit_cost="1.00"
        )

        assert record.unit_cost == Decimal("8.6667")
        assert record.total_cost == Decimal("260.00")
        assert record.cogs_total == Decimal("260.00")
        assert get_ledger(product.id) == LedgerSnapshot(stock=120, average_cost=Decimal("8.6667"))

    def test_adjustment_sets_stock(self, db_session, product):
        purchase(product, 10, "3")
        inventory_service.record_movement(
            item_id=product.id, movement_type=ADJUSTMENT, quantity=4, unit_cost="3"
        )

        ledger = get_ledger(product.id)
        assert ledger.stock == 4
        assert ledger.average_cost == Decimal("3.0000")

    def test_clamped_usage_is_flagged_and_logged(self, db_session, product, caplog):
        purchase(product, 5, "2")

        with caplog.at_level(logging.WARNING):
            record = usage(product, 8)

        assert record.stock_clamped is True
        assert get_ledger(product.id).stock == 0
        assert "clamped" in caplog.text

    def test_service_item_rejected_without_side_effects(self, db_session, haircut):
        with pytest.raises(InvalidOperationError):
            purchase(haircut, 1, "5")

        assert db_session.query(InventoryRecord).count() == 0
        assert get_ledger(haircut.id).stock == 0

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.record_movement(
                item_id=999999, movement_type=PURCHASE, quantity=1, unit_cost="1"
            )

    def test_purchase_without_unit_cost_rejected(self, db_session, product):
        with pytest.raises(ValidationError):
            inventory_service.record_movement(item_id=product.id, movement_type=PURCHASE, quantity=3)

    def test_unrecognised_type_rejected(self, db_session, product):
        with pytest.raises(ValidationError):
            inventory_service.record_movement(
                item_id=product.id, movement_type="Shrink", quantity=3, unit_cost="1"
            )

    def test_item_checked_before_movement(self, db_session, haircut):
        with pytest.raises(InvalidOperationError):
            inventory_service.record_movement(
                item_id=haircut.id, movement_type="Shrink", quantity=-1, unit_cost="1"
            )
        with pytest.raises(NotFoundError):
            inventory_service.record_movement(
                item_id=999999, movement_type="Shrink", quantity=-1, unit_cost="1"
            )

    @pytest.mark.parametrize("quantity, unit_cost", [
        (1, "1e30"),
        (1, "10000000"),
        (10**20, "1"),
    ])
    def test_out_of_range_values_rejected(self, db_session, product, quantity, unit_cost):
        with pytest.raises(ValidationError):
            inventory_service.record_movement(
                item_id=product.id, movement_type=PURCHASE, quantity=quantity, unit_cost=unit_cost
            )

        assert db_session.query(InventoryRecord).count() == 0
        assert get_ledger(product.id).stock == 0

    def test_future_occurred_at_rejected(self, db_session, product):
        with pytest.raises(ValidationError):
            purchase(product, 1, "1", when=days_ago(-1))

    def test_invalid_occurred_at_rejected(self, db_session, product):
        with pytest.raises(ValidationError):
            purchase(product, 1, "1", when="yesterday")

    def test_backdated_append_does_not_reconcile(self, db_session, product):
        purchase(product, 10, "5", when=days_ago(3))
        usage(product, 4, when=days_ago(2))
        inventory_service.record_movement(
            item_id=product.id,
            movement_type=ADJUSTMENT,
            quantity=20,
            unit_cost="5",
            occurred_at=days_ago(5),
        )

        # Incremental path: the adjustment simply sets stock
        assert get_ledger(product.id).stock == 20

        # Replay honours chronological order: 20, +10, -4
        snapshot = inventory_service.reconcile_item(product.id)
        assert snapshot.stock == 26
        assert get_ledger(product.id).stock == 26


class TestRecordStore:
    def test_history_is_chronological(self, db_session, product):
        late = purchase(product, 1, "1", when=days_ago(1))
        early = purchase(product, 1, "1", when=days_ago(4))

        history = inventory_service.list_records_for_item(product.id)
        assert [r.id for r in history] == [early.id, late.id]

    def test_list_records_filters(self, db_session, product):
        purchase(product, 10, "1", when=days_ago(10))
        usage(product, 2, when=days_ago(1))

        usages = inventory_service.list_records(item_id=product.id, movement_type=USAGE)
        assert [r.type for r in usages] == [USAGE]

        recent = inventory_service.list_records(item_id=product.id, start=days_ago(5))
        assert len(recent) == 1

    def test_get_missing_record(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.get_record(424242)


class TestReconciliation:
    def test_update_quantity_replays_history(self, db_session, product):
        first = purchase(product, 100, "8", when=days_ago(3))
        purchase(product, 50, "10", when=days_ago(2))
        usage(product, 30, when=days_ago(1))

        inventory_service.update_record(first.id, {"quantity": 50})

        # stock 50 + 50 - 30; average (400 + 500) / 100
        ledger = get_ledger(product.id)
        assert ledger.stock == 70
        assert ledger.average_cost == Decimal("9.0000")

        refreshed = inventory_service.get_record(first.id)
        assert refreshed.total_cost == Decimal("400.00")

    def test_update_can_change_type(self, db_session, product):
        purchase(product, 10, "2", when=days_ago(2))
        record = purchase(product, 5, "4", when=days_ago(1))

        inventory_service.update_record(record.id, {"type": RETURN})

        ledger = get_ledger(product.id)
        assert ledger.stock == 15
        assert ledger.average_cost == Decimal("2.6667")

    def test_update_moving_record_reconciles_both_items(self, db_session, product, make_item, product_category):
        conditioner = make_item(product_category, "Conditioner")
        record = purchase(product, 10, "3")
        purchase(conditioner, 4, "5")

        inventory_service.update_record(record.id, {"item_id": conditioner.id})

        assert get_ledger(product.id) == LedgerSnapshot(stock=0, average_cost=Decimal("0.0000"))
        moved = get_ledger(conditioner.id)
        assert moved.stock == 14
        # (30 + 20) / 14
        assert moved.average_cost == Decimal("3.5714")

    def test_failed_update_leaves_state_untouched(self, db_session, product):
        record = purchase(product, 10, "3")

        with pytest.raises(ValidationError):
            inventory_service.update_record(record.id, {"type": "Bogus"})

        assert inventory_service.get_record(record.id).type == PURCHASE
        assert get_ledger(product.id).stock == 10

    def test_update_refreshes_clamp_flags(self, db_session, product):
        first = purchase(product, 5, "2", when=days_ago(2))
        over = usage(product, 8, when=days_ago(1))
        assert over.stock_clamped is True

        inventory_service.update_record(first.id, {"quantity": 10})

        assert inventory_service.get_record(over.id).stock_clamped is False
        assert get_ledger(product.id).stock == 2

    def test_delete_record_reconciles(self, db_session, product):
        purchase(product, 10, "4", when=days_ago(3))
        second = purchase(product, 10, "8", when=days_ago(2))

        item_id = inventory_service.delete_record(second.id)

        assert item_id == product.id
        assert get_ledger(product.id) == LedgerSnapshot(stock=10, average_cost=Decimal("4.0000"))
        assert db_session.query(InventoryRecord).count() == 1

    def test_delete_last_inbound_resets_average(self, db_session, product):
        only = purchase(product, 3, "9")
        inventory_service.delete_record(only.id)

        assert get_ledger(product.id) == LedgerSnapshot(stock=0, average_cost=Decimal("0.0000"))

    def test_reconcile_repairs_drifted_ledger(self, db_session, product):
        purchase(product, 6, "5")
        set_ledger(product, LedgerSnapshot(stock=99, average_cost=Decimal("1")))
        db_session.commit()

        snapshot = inventory_service.reconcile_item(product.id)

        assert snapshot == LedgerSnapshot(stock=6, average_cost=Decimal("5.0000"))

    def test_reconcile_all_skips_services(self, db_session, product, haircut):
        purchase(product, 2, "1")

        results = inventory_service.reconcile_all()

        assert set(results) == {product.id}


class TestReads:
    def test_calculate_cogs(self, db_session, product):
        purchase(product, 4, "2.5")

        result = inventory_service.calculate_cogs(product.id, 3)

        assert result["unit_cost"] == Decimal("2.5000")
        assert result["total_cost"] == Decimal("7.50")
        # Pure read: nothing consumed
        assert get_ledger(product.id).stock == 4

    def test_calculate_cogs_without_cost_basis(self, db_session, product):
        result = inventory_service.calculate_cogs(product.id, 3)
        assert result["total_cost"] == Decimal("0.00")

    def test_calculate_cogs_for_service_rejected(self, db_session, haircut):
        with pytest.raises(InvalidOperationError):
            inventory_service.calculate_cogs(haircut.id, 1)

    def test_inventory_summary(self, db_session, product):
        purchase(product, 4, "2.5")

        summary = inventory_service.get_inventory_summary(product.id)

        assert summary["stock"] == 4
        assert summary["inventory_value"] == Decimal("10.00")
        assert summary["record_count"] == 1
        assert summary["reorder_threshold"] == 10

    def test_stock_never_negative_in_database(self, db_session, product):
        purchase(product, 1, "1")
        usage(product, 50)

        assert db_session.get(Item, product.id).stock == 0
