"""
Order lifecycle coordinator tests against in-memory repositories.
"""

import itertools
import logging
from decimal import Decimal

import pytest

from restobar.models import (
    Order,
    OrderCreate,
    OrderItemCreate,
    OrderItemWithProduct,
    OrderStatus,
    OrderWithItems,
    PaymentStatus,
    Product,
    Table,
    TableStatus,
    utcnow,
)
from restobar.order_lifecycle import (
    Err,
    InvalidPriceError,
    Ok,
    OrderErrorKind,
    OrderLifecycle,
    compute_order_total,
    parse_price,
)
from restobar.repositories import DuplicateSaleError


class InMemoryOrders:
    def __init__(self, products: dict[int, Product]):
        self.products = products
        self.orders: dict[int, Order] = {}
        self.items = []
        self._ids = itertools.count(1)
        self._item_ids = itertools.count(1)

    def create_order(self, order):
        order.id = next(self._ids)
        self.orders[order.id] = order
        return order

    def create_order_item(self, item):
        item.id = next(self._item_ids)
        self.items.append(item)
        return item

    def update_order(self, order_id, fields):
        order = self.orders.get(order_id)
        if order is None or order.deleted_at is not None:
            return None
        for key, value in fields.items():
            setattr(order, key, value)
        return order

    def delete_order(self, order_id):
        return self.update_order(order_id, {"deleted_at": utcnow()})

    def get_order_with_items(self, order_id):
        order = self.orders.get(order_id)
        if order is None or order.deleted_at is not None:
            return None
        items = [
            OrderItemWithProduct(**item.model_dump(), product=self.products.get(item.product_id))
            for item in self.items if item.order_id == order_id
        ]
        return OrderWithItems(**order.model_dump(), items=items)

    def get_active_orders(self):
        return [
            o for o in self.orders.values()
            if o.deleted_at is None and o.status not in (OrderStatus.completed, OrderStatus.cancelled)
        ]


class InMemoryTables:
    def __init__(self, *tables: Table):
        self.tables = {t.id: t for t in tables}
        self.updates = []
        self.fail = False

    def get_table(self, table_id):
        return self.tables.get(table_id)

    def update_table(self, table_id, fields):
        if self.fail:
            raise RuntimeError("database is locked")
        self.updates.append((table_id, fields))
        table = self.tables.get(table_id)
        if table is None:
            return None
        for key, value in fields.items():
            setattr(table, key, value)
        return table


class InMemorySales:
    def __init__(self):
        self.sales = []
        self.error: Exception | None = None

    def get_sales_by_order_id(self, order_id):
        return [s for s in self.sales if s.order_id == order_id]

    def create_sale(self, sale):
        if self.error is not None:
            raise self.error
        self.sales.append(sale)
        return sale


@pytest.fixture
def products():
    return {
        1: Product(id=1, name="Garba", price=Decimal("5.00")),
        2: Product(id=2, name="Bissap", price=Decimal("3.50")),
    }


@pytest.fixture
def tables():
    return InMemoryTables(
        Table(id=1, number=1, qr_code="t1"),
        Table(id=2, number=2, qr_code="t2"),
    )


@pytest.fixture
def sales():
    return InMemorySales()


@pytest.fixture
def lifecycle(products, tables, sales):
    return OrderLifecycle(InMemoryOrders(products), tables, sales)


def order_data(table_id=1, items=None, **extra) -> OrderCreate:
    if items is None:
        items = [
            OrderItemCreate(product_id=1, quantity=2, price="5.00"),
            OrderItemCreate(product_id=2, quantity=1, price="3.50"),
        ]
    return OrderCreate(table_id=table_id, customer_name="Awa", order_items=items, **extra)


def create(lifecycle, **kwargs) -> OrderWithItems:
    result = lifecycle.create_order(order_data(**kwargs))
    assert isinstance(result, Ok), result
    return result.value


def complete(lifecycle, order_id, **extra):
    return lifecycle.update_order(order_id, {"status": OrderStatus.completed, **extra})


# ============ PRICES ============

@pytest.mark.parametrize("raw, expected", [
    ("5.00", "5.00"),
    ("12.345", "12.35"),
    (7, "7.00"),
    (3.5, "3.50"),
    (" 2.1 ", "2.10"),
])
def test_parse_price_rounds_to_cents(raw, expected):
    assert parse_price(raw) == Decimal(expected)


@pytest.mark.parametrize("raw", ["abc", "", "-1", "NaN", "Infinity", None, True, "1e30", "100000000.00"])
def test_parse_price_rejects_invalid_values(raw):
    with pytest.raises(InvalidPriceError):
        parse_price(raw)


def test_compute_order_total():
    total = compute_order_total([(Decimal("5.00"), 2), (Decimal("3.50"), 1)])
    assert total == Decimal("13.50")


# ============ CREATE ============

def test_create_order_totals_items_and_occupies_table(lifecycle, tables):
    order = create(lifecycle)

    assert order.total == Decimal("13.50")
    assert order.status == OrderStatus.pending
    assert order.payment_status == PaymentStatus.pending
    assert order.payment_method == "cash"
    assert [(i.product_id, i.quantity, i.price) for i in order.items] == [
        (1, 2, Decimal("5.00")),
        (2, 1, Decimal("3.50")),
    ]
    assert tables.get_table(1).status == TableStatus.occupied


def test_create_order_keeps_submitted_payment_method(lifecycle):
    order = create(lifecycle, payment_method="wave")
    assert order.payment_method == "wave"


def test_create_order_requires_items(lifecycle):
    result = lifecycle.create_order(order_data(items=[]))

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.validation
    assert lifecycle.orders.orders == {}


def test_create_order_rejects_unparseable_price(lifecycle):
    items = [OrderItemCreate(product_id=1, quantity=1, price="five")]
    result = lifecycle.create_order(order_data(items=items))

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.validation
    assert lifecycle.orders.orders == {}


def test_create_order_rejects_total_beyond_column_range(lifecycle):
    items = [OrderItemCreate(product_id=1, quantity=3, price="50000000.00")]
    result = lifecycle.create_order(order_data(items=items))

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.validation
    assert lifecycle.orders.orders == {}


def test_create_order_unknown_table(lifecycle, tables):
    result = lifecycle.create_order(order_data(table_id=99))

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.not_found
    assert lifecycle.orders.orders == {}
    assert tables.updates == []


def test_item_prices_are_snapshots(lifecycle, products):
    order = create(lifecycle)
    products[1].price = Decimal("9.99")

    refreshed = lifecycle.orders.get_order_with_items(order.id)
    assert refreshed.items[0].price == Decimal("5.00")
    assert refreshed.total == Decimal("13.50")


# ============ UPDATE ============

def test_completion_forces_paid_and_completed_at(lifecycle):
    order = create(lifecycle)

    result = complete(lifecycle, order.id, payment_status=PaymentStatus.pending)

    assert isinstance(result, Ok)
    assert result.value.status == OrderStatus.completed
    assert result.value.payment_status == PaymentStatus.paid
    assert result.value.completed_at is not None


def test_repeated_completion_records_one_sale(lifecycle, sales):
    order = create(lifecycle)

    complete(lifecycle, order.id)
    complete(lifecycle, order.id)
    lifecycle.update_order(order.id, {"payment_status": PaymentStatus.paid})

    assert len(sales.sales) == 1
    sale = sales.sales[0]
    assert sale.order_id == order.id
    assert sale.amount == Decimal("13.50")
    assert sale.payment_method == "cash"


def test_sale_description_names_order_and_products(lifecycle, sales):
    order = create(lifecycle)
    complete(lifecycle, order.id)

    description = sales.sales[0].description
    assert f"#{order.id}" in description
    assert "Garba, Bissap" in description


def test_completing_last_order_frees_table(lifecycle, tables):
    order = create(lifecycle)

    complete(lifecycle, order.id)

    assert tables.get_table(1).status == TableStatus.available


def test_completing_one_of_two_orders_keeps_table_occupied(lifecycle, tables):
    first = create(lifecycle)
    second = create(lifecycle)

    complete(lifecycle, first.id)
    assert tables.get_table(1).status == TableStatus.occupied

    complete(lifecycle, second.id)
    assert tables.get_table(1).status == TableStatus.available


def test_orders_on_other_tables_do_not_hold_table(lifecycle, tables):
    order = create(lifecycle)
    create(lifecycle, table_id=2)

    complete(lifecycle, order.id)

    assert tables.get_table(1).status == TableStatus.available
    assert tables.get_table(2).status == TableStatus.occupied


def test_cancellation_frees_table_without_sale(lifecycle, tables, sales):
    order = create(lifecycle)

    result = lifecycle.update_order(order.id, {"status": OrderStatus.cancelled})

    assert isinstance(result, Ok)
    assert result.value.completed_at is None
    assert tables.get_table(1).status == TableStatus.available
    assert sales.sales == []


def test_reopening_order_clears_completed_at_and_occupies_table(lifecycle, tables):
    order = create(lifecycle)
    complete(lifecycle, order.id)

    result = lifecycle.update_order(order.id, {"status": OrderStatus.ready})

    assert result.value.completed_at is None
    assert tables.get_table(1).status == TableStatus.occupied


def test_notes_patch_changes_nothing_else(lifecycle, tables, sales):
    order = create(lifecycle)
    before = lifecycle.orders.orders[order.id].model_dump()
    updates_before = len(tables.updates)

    result = lifecycle.update_order(order.id, {"notes": "no chili"})

    after = result.value.model_dump()
    assert after.pop("notes") == "no chili"
    before.pop("notes")
    assert after == before
    assert len(tables.updates) == updates_before
    assert sales.sales == []


def test_update_rejects_empty_patch(lifecycle):
    order = create(lifecycle)

    result = lifecycle.update_order(order.id, {})

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.validation


def test_update_unknown_order(lifecycle):
    result = complete(lifecycle, 404)

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.not_found


def test_update_deleted_order_is_not_found(lifecycle, sales):
    order = create(lifecycle)
    lifecycle.delete_order(order.id)

    result = complete(lifecycle, order.id)

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.not_found
    assert sales.sales == []


# ============ BEST-EFFORT SIDE EFFECTS ============

def test_table_failure_does_not_fail_completion(lifecycle, tables, sales, caplog):
    order = create(lifecycle)
    tables.fail = True

    with caplog.at_level(logging.ERROR, logger="restobar.order_lifecycle"):
        result = complete(lifecycle, order.id)

    assert isinstance(result, Ok)
    assert result.value.payment_status == PaymentStatus.paid
    assert len(sales.sales) == 1
    assert any("Error updating table" in r.message for r in caplog.records)


def test_sale_failure_is_logged_not_raised(lifecycle, sales, caplog):
    order = create(lifecycle)
    sales.error = RuntimeError("disk full")

    with caplog.at_level(logging.ERROR, logger="restobar.order_lifecycle"):
        result = complete(lifecycle, order.id)

    assert isinstance(result, Ok)
    assert any("Error recording sale" in r.message and r.exc_info for r in caplog.records)


def test_duplicate_sale_signal_is_treated_as_done(lifecycle, sales):
    order = create(lifecycle)
    sales.error = DuplicateSaleError(order.id)

    result = complete(lifecycle, order.id)

    assert isinstance(result, Ok)
    assert sales.sales == []


def test_missing_table_is_tolerated(lifecycle, tables):
    order = create(lifecycle)
    del tables.tables[1]

    result = complete(lifecycle, order.id)

    assert isinstance(result, Ok)


# ============ DELETE ============

def test_delete_order_releases_table(lifecycle, tables):
    order = create(lifecycle)

    result = lifecycle.delete_order(order.id)

    assert isinstance(result, Ok)
    assert tables.get_table(1).status == TableStatus.available
    assert lifecycle.orders.get_order_with_items(order.id) is None


def test_deleting_closed_order_leaves_table_alone(lifecycle, tables):
    order = create(lifecycle)
    complete(lifecycle, order.id)
    tables.update_table(1, {"status": TableStatus.reserved})

    result = lifecycle.delete_order(order.id)

    assert isinstance(result, Ok)
    assert tables.get_table(1).status == TableStatus.reserved


def test_delete_unknown_order(lifecycle):
    result = lifecycle.delete_order(7)

    assert isinstance(result, Err)
    assert result.error.kind == OrderErrorKind.not_found
