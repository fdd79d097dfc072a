# Overview: Pytest coverage for the flask CLI commands.

from decimal import Decimal

from salonpos.models import Category, ExpenseCategory, Role
from salonpos.services import inventory_service
from salonpos.services.costing import LedgerSnapshot, PURCHASE
from salonpos.services.ledger_service import get_ledger, set_ledger


class TestSystemCommands:
    def test_seed_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "seed"])
        assert first.exit_code == 0, first.output
        assert "roles: 5 created" in first.output

        second = runner.invoke(args=["system", "seed"])
        assert second.exit_code == 0, second.output
        assert "categories: 0 created" in second.output

        assert db_session.query(Role).count() == 5
        assert db_session.query(ExpenseCategory).count() == 9

        products = db_session.query(Category).filter_by(name="Hair Products & Accessories").one()
        assert products.tracks_stock is True
        assert products.commission_rate == Decimal("95.00")
        assert {r.name for r in products.roles} == {"Hairdresser", "Salon Owner"}

        nails = db_session.query(Category).filter_by(name="Nail Services").one()
        assert nails.commission_rate == Decimal("0.00")
        assert nails.salon_owner_rate == Decimal("100.00")


class TestInventoryCommands:
    def test_reconcile_single_item(self, app, db_session, product):
        inventory_service.record_movement(
            item_id=product.id, movement_type=PURCHASE, quantity=8, unit_cost="2"
        )
        set_ledger(product, LedgerSnapshot(stock=1, average_cost=Decimal("0")))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["inventory", "reconcile", "--item-id", str(product.id)])

        assert result.exit_code == 0, result.output
        assert "Reconciled 1 item(s)" in result.output
        assert get_ledger(product.id).stock == 8

    def test_reconcile_all(self, app, db_session, product, haircut):
        result = app.test_cli_runner().invoke(args=["inventory", "reconcile"])

        assert result.exit_code == 0, result.output
        assert "Reconciled 1 item(s)" in result.output

    def test_reconcile_unknown_item(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["inventory", "reconcile", "--item-id", "999999"])

        assert result.exit_code != 0
        assert "Item not found" in result.output
