# Overview: Pytest coverage for reporting aggregations and their endpoints.

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import days_ago
from salonpos.models import Customer, Expense, ExpenseCategory
from salonpos.services import inventory_service, reporting_service, sales_service
from salonpos.services.catalog_service import update_category
from salonpos.services.costing import PURCHASE, USAGE
from salonpos.validation import ValidationError


def sell(item, employee, quantity, price, when=None):
    total = Decimal(price) * quantity
    return sales_service.create_sale(
        lines=[{"item_id": item.id, "employee_id": employee.id, "quantity": quantity, "price": price}],
        total=str(total),
        occurred_at=when,
    )


class TestResolvePeriod:
    NOW = datetime(2026, 3, 15, 14, 30)

    def test_today(self):
        start, end = reporting_service.resolve_period("today", now=self.NOW)
        assert start == datetime(2026, 3, 15)
        assert end.date() == self.NOW.date()

    def test_week(self):
        start, _ = reporting_service.resolve_period("week", now=self.NOW)
        assert start == datetime(2026, 3, 8, 14, 30)

    def test_custom_end_date_covers_whole_day(self):
        start, end = reporting_service.resolve_period("custom", "2026-03-01", "2026-03-02", now=self.NOW)
        assert start == datetime(2026, 3, 1)
        assert end > datetime(2026, 3, 2, 23, 59)

    @pytest.mark.parametrize("args", [
        ("fortnight", None, None),
        ("custom", None, "2026-03-02"),
        ("custom", "2026-03-05", "2026-03-02"),
        ("custom", "not-a-date", "2026-03-02"),
    ])
    def test_invalid(self, args):
        with pytest.raises(ValidationError):
            reporting_service.resolve_period(*args, now=self.NOW)


class TestRevenueReport:
    def test_uses_snapshotted_amounts(self, db_session, haircut, product, employee, service_category):
        inventory_service.record_movement(
            item_id=product.id, movement_type=PURCHASE, quantity=10, unit_cost="6"
        )
        sell(haircut, employee, 1, "45.00")
        sell(product, employee, 2, "25.00")

        # Later rate change must not alter the report
        update_category(service_category.id, {"commission_rate": Decimal("0")})

        report = reporting_service.revenue_report(start=days_ago(1), end=days_ago(-1))

        assert report["transactions"] == 2
        assert report["total_sales"] == Decimal("95.00")
        assert report["employee_earnings"] == Decimal("79.00")
        assert report["salon_owner_earnings"] == Decimal("16.00")
        assert report["cost_of_goods_sold"] == Decimal("12.00")
        assert report["gross_profit"] == Decimal("83.00")

        by_category = {row["name"]: row for row in report["by_category"]}
        assert by_category["Hair Services"]["employee_commission"] == Decimal("31.50")
        assert by_category["Hair Products & Accessories"]["items_sold"] == 2

        [row] = report["by_employee"]
        assert row["name"] == "Sarah Johnson"
        assert row["commission"] == Decimal("79.00")

    def test_period_excludes_older_sales(self, db_session, haircut, employee):
        sell(haircut, employee, 1, "45.00", when=days_ago(10))

        report = reporting_service.revenue_report(start=days_ago(7), end=days_ago(-1))

        assert report["transactions"] == 0
        assert report["total_sales"] == Decimal("0.00")
        assert report["by_employee"] == []


class TestInventoryAndExpenseReports:
    def test_inventory_report_groups_by_item_and_type(self, db_session, product):
        inventory_service.record_movement(
            item_id=product.id, movement_type=PURCHASE, quantity=10, unit_cost="3"
        )
        inventory_service.record_movement(item_id=product.id, movement_type=USAGE, quantity=4)

        report = reporting_service.inventory_report(start=days_ago(1), end=days_ago(-1))

        assert report["by_type"][PURCHASE]["total_cost"] == Decimal("30.00")
        assert report["by_type"][USAGE]["total_quantity"] == 4
        assert report["total_usage"] == 4
        assert report["by_item"][0]["count"] == 2

    def test_expense_report(self, db_session):
        rent = ExpenseCategory(name="Rent")
        db_session.add(rent)
        db_session.flush()
        db_session.add_all([
            Expense(category_id=rent.id, amount=Decimal("1000.00"), payment_method="TRANSFER", occurred_at=days_ago(2)),
            Expense(category_id=rent.id, amount=Decimal("50.00"), payment_method="CASH", occurred_at=days_ago(1)),
            Expense(category_id=rent.id, amount=Decimal("70.00"), payment_method="CASH", occurred_at=days_ago(40)),
        ])
        db_session.commit()

        report = reporting_service.expense_report(start=days_ago(7), end=days_ago(-1))

        assert report["total_expenses"] == Decimal("1050.00")
        assert report["by_category"][0]["count"] == 2
        assert report["by_payment_method"]["CASH"]["total"] == Decimal("50.00")


class TestLowStockReport:
    def test_statuses_and_projection(self, db_session, make_item, product_category):
        out = make_item(product_category, "Hair Mask", reorder_threshold=10)
        critical = make_item(product_category, "Serum", reorder_threshold=10)
        low = make_item(product_category, "Hair Spray", reorder_threshold=10)
        healthy = make_item(product_category, "Comb", reorder_threshold=10)

        for item, purchased, used in ((out, 5, 5), (critical, 33, 30), (low, 8, 0), (healthy, 50, 0)):
            inventory_service.record_movement(
                item_id=item.id, movement_type=PURCHASE, quantity=purchased, unit_cost="2",
                occurred_at=days_ago(20),
            )
            if used:
                inventory_service.record_movement(
                    item_id=item.id, movement_type=USAGE, quantity=used, occurred_at=days_ago(10),
                )

        report = reporting_service.low_stock_report()

        rows = {row["name"]: row for row in report["items"]}
        assert set(rows) == {"Hair Mask", "Serum", "Hair Spray"}
        assert rows["Hair Mask"]["status"] == "Out of Stock"
        assert rows["Serum"]["status"] == "Critical"
        assert rows["Hair Spray"]["status"] == "Low"

        # 30 used over a 30 day window: 1 per day, 3 left
        assert rows["Serum"]["days_until_out_of_stock"] == 3
        assert rows["Hair Spray"]["days_until_out_of_stock"] is None
        assert rows["Serum"]["suggested_reorder_quantity"] == 17
        assert rows["Hair Spray"]["stock_value"] == Decimal("16.00")

        assert report["summary"]["total_low_stock_items"] == 3
        assert report["alerts"]["urgent"] is True
        assert report["alerts"]["message"] == "1 item(s) are out of stock"

    def test_services_never_listed(self, db_session, haircut):
        assert reporting_service.low_stock_report()["items"] == []


class TestSalesBreakdownReports:
    def test_item_sales_uses_recorded_cogs(self, db_session, haircut, product, employee):
        inventory_service.record_movement(
            item_id=product.id, movement_type=PURCHASE, quantity=10, unit_cost="6"
        )
        sell(haircut, employee, 1, "45.00")
        sell(product, employee, 2, "25.00")

        report = reporting_service.item_sales_report(start=days_ago(1), end=days_ago(-1))

        shampoo, cut = report["items"]
        assert shampoo["name"] == "Argan Shampoo"
        assert shampoo["quantity_sold"] == 2
        assert shampoo["average_price"] == Decimal("25.00")
        assert shampoo["cost_of_goods_sold"] == Decimal("12.00")
        assert shampoo["profit_margin"] == Decimal("76.00")
        # No stock behind a service
        assert cut["cost_of_goods_sold"] == Decimal("0.00")
        assert cut["profit_margin"] == Decimal("100.00")
        assert report["summary"]["total_revenue"] == Decimal("95.00")
        assert report["summary"]["total_quantity_sold"] == 3

    def test_customer_sales_skips_walk_ins(self, db_session, haircut, employee):
        customer = Customer(name="Alice Johnson", email="alice@example.com")
        db_session.add(customer)
        db_session.commit()
        line = {"item_id": haircut.id, "employee_id": employee.id, "quantity": 1, "price": "45.00"}
        sales_service.create_sale(lines=[line], total="45.00", customer_id=customer.id)
        sales_service.create_sale(lines=[{**line, "price": "50.00"}], total="50.00", customer_id=customer.id)
        sell(haircut, employee, 1, "45.00")

        report = reporting_service.customer_sales_report(start=days_ago(1), end=days_ago(-1))

        [row] = report["customers"]
        assert row["name"] == "Alice Johnson"
        assert row["total_spent"] == Decimal("95.00")
        assert row["transaction_count"] == 2
        assert row["average_order_value"] == Decimal("47.50")
        assert report["summary"]["average_customer_value"] == Decimal("95.00")

    def test_category_sales_share(self, db_session, haircut, product, employee):
        inventory_service.record_movement(
            item_id=product.id, movement_type=PURCHASE, quantity=10, unit_cost="6"
        )
        sell(haircut, employee, 1, "45.00")
        sell(product, employee, 2, "25.00")

        report = reporting_service.category_sales_report(start=days_ago(1), end=days_ago(-1))

        products, services = report["categories"]
        assert products["name"] == "Hair Products & Accessories"
        assert products["market_share"] == Decimal("52.63")
        assert products["commission_rate"] == Decimal("95.00")
        assert services["market_share"] == Decimal("47.37")
        assert report["summary"]["top_category"] == "Hair Products & Accessories"

    def test_empty_period(self, db_session):
        start, end = days_ago(1), days_ago(-1)

        assert reporting_service.item_sales_report(start=start, end=end)["items"] == []
        assert reporting_service.customer_sales_report(start=start, end=end)["summary"]["total_customers"] == 0
        assert reporting_service.category_sales_report(start=start, end=end)["summary"]["top_category"] == "N/A"


class TestReportRoutes:
    def test_revenue_route(self, client, db_session, haircut, employee):
        sell(haircut, employee, 1, "45.00")

        resp = client.get("/api/reports/revenue?period=week")

        assert resp.status_code == 200
        assert resp.get_json()["total_sales"] == "45.00"

    def test_bad_period(self, client, db_session):
        assert client.get("/api/reports/expenses?period=decade").status_code == 400
        assert client.get("/api/reports/inventory?period=custom").status_code == 400

    def test_low_stock_route(self, client, db_session, product):
        resp = client.get("/api/reports/low-stock")

        assert resp.status_code == 200
        assert resp.get_json()["items"][0]["status"] == "Out of Stock"

    def test_breakdown_routes(self, client, db_session, haircut, employee):
        sell(haircut, employee, 1, "45.00")

        items = client.get("/api/reports/item-sales?period=week").get_json()
        assert items["items"][0]["revenue"] == "45.00"

        categories = client.get("/api/reports/category-sales?period=month").get_json()
        assert categories["summary"]["top_category"] == "Hair Services"

        resp = client.get("/api/reports/customer-sales?period=year")
        assert resp.status_code == 200
        assert resp.get_json()["customers"] == []

        assert client.get("/api/reports/item-sales?period=decade").status_code == 400
