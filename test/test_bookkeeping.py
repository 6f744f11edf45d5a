"""
Sales, expenses and dashboard figures.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from restobar.models import Sale


def complete(client, headers, order_id):
    response = client.put(f"/orders/{order_id}", json={"status": "completed"}, headers=headers)
    assert response.status_code == 200


# ============ SALES ============

def test_manual_sale(client, auth_headers):
    response = client.post(
        "/sales",
        json={"amount": "20.00", "payment_method": "wave", "description": "Catering"},
        headers=auth_headers,
    )

    assert response.status_code == 201
    assert response.json()["order_id"] is None
    assert [s["description"] for s in client.get("/sales", headers=auth_headers).json()] == ["Catering"]


def test_manual_sale_for_completed_order_conflicts(client, auth_headers, place_order):
    order = place_order()
    complete(client, auth_headers, order["id"])

    response = client.post("/sales", json={"order_id": order["id"], "amount": "13.50"}, headers=auth_headers)

    assert response.status_code == 409


def test_manual_sale_for_unknown_order(client, auth_headers):
    response = client.post("/sales", json={"order_id": 31, "amount": "1.00"}, headers=auth_headers)

    assert response.status_code == 404


def test_unique_live_sale_per_order_is_enforced_by_the_database(client, auth_headers, place_order, db_session):
    order = place_order()
    complete(client, auth_headers, order["id"])

    # Bypass the pre-check: the partial unique index must still refuse it
    db_session.add(Sale(order_id=order["id"], amount=Decimal("13.50"), payment_method="cash"))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_deleted_sale_lets_order_record_again(client, auth_headers, place_order):
    order = place_order()
    complete(client, auth_headers, order["id"])
    sale_id = client.get("/sales", headers=auth_headers).json()[0]["id"]

    assert client.delete(f"/sales/{sale_id}", headers=auth_headers).status_code == 200
    assert client.get("/sales", headers=auth_headers).json() == []

    complete(client, auth_headers, order["id"])
    sales = client.get("/sales", headers=auth_headers).json()
    assert len(sales) == 1
    assert sales[0]["id"] != sale_id


def test_delete_unknown_sale(client, auth_headers):
    assert client.delete("/sales/5", headers=auth_headers).status_code == 404


def test_cashier_cannot_delete_sales(client, cashier_headers):
    assert client.delete("/sales/5", headers=cashier_headers).status_code == 403


# ============ EXPENSES ============

def test_expense_crud(client, auth_headers):
    created = client.post(
        "/expenses",
        json={"description": "Charcoal", "amount": "15.00", "category": "supplies"},
        headers=auth_headers,
    )
    assert created.status_code == 201
    expense_id = created.json()["id"]

    updated = client.put(f"/expenses/{expense_id}", json={"amount": "17.25"}, headers=auth_headers)
    assert updated.json()["amount"] == "17.25"
    assert updated.json()["description"] == "Charcoal"

    assert client.delete(f"/expenses/{expense_id}", headers=auth_headers).status_code == 200
    assert client.get("/expenses", headers=auth_headers).json() == []
    assert client.put(f"/expenses/{expense_id}", json={"amount": "1.00"}, headers=auth_headers).status_code == 404


def test_cashier_cannot_see_expenses(client, cashier_headers):
    assert client.get("/expenses", headers=cashier_headers).status_code == 403


# ============ DASHBOARD ============

def test_dashboard_totals(client, auth_headers, place_order):
    done = place_order()
    place_order()
    complete(client, auth_headers, done["id"])
    client.post("/expenses", json={"description": "Gas", "amount": "4.00", "category": "utilities"}, headers=auth_headers)

    response = client.get("/dashboard", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["total_sales"]) == Decimal("13.50")
    assert Decimal(body["total_expenses"]) == Decimal("4.00")
    assert Decimal(body["net_profit"]) == Decimal("9.50")
    assert body["active_orders_count"] == 1
    assert body["completed_orders_count"] == 1
    assert body["available_tables_count"] == 0
    assert len(body["recent_sales"]) == 1
    assert len(body["recent_orders"]) == 1


def test_daily_stats_for_today(client, auth_headers, place_order):
    order = place_order()
    complete(client, auth_headers, order["id"])

    response = client.get("/dashboard/daily", headers=auth_headers)

    body = response.json()
    assert body["day"] == datetime.now(timezone.utc).date().isoformat()
    assert Decimal(body["total_sales"]) == Decimal("13.50")
    assert Decimal(body["profit"]) == Decimal("13.50")
    assert body["order_count"] == 1


def test_daily_stats_for_another_day_are_empty(client, auth_headers, place_order):
    place_order()
    yesterday = datetime.now(timezone.utc).date() - timedelta(days=1)

    body = client.get("/dashboard/daily", params={"day": yesterday.isoformat()}, headers=auth_headers).json()

    assert Decimal(body["total_sales"]) == 0
    assert body["order_count"] == 0


def test_weekly_stats_start_on_monday(client, auth_headers, place_order):
    order = place_order()
    complete(client, auth_headers, order["id"])

    week = client.get("/dashboard/weekly", headers=auth_headers).json()

    assert [d["label"] for d in week] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert date.fromisoformat(week[0]["day"]).weekday() == 0
    today = datetime.now(timezone.utc).date().isoformat()
    (today_stats,) = [d for d in week if d["day"] == today]
    assert Decimal(today_stats["sales"]) == Decimal("13.50")
    assert today_stats["orders"] == 1
    assert sum(d["orders"] for d in week) == 1


def test_dashboard_requires_analytics_permission(client):
    assert client.get("/dashboard").status_code == 401
