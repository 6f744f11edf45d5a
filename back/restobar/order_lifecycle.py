"""
Order Lifecycle

Keeps derived state in step with orders:
- table occupancy follows the orders seated at each table
- a completed and paid order materialises exactly one sale

The order write is the operation of record. Table and sale updates are
best-effort: their failures are logged and never fail the request.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Generic, Iterable, TypeVar

from .models import (
    CLOSED_ORDER_STATUSES,
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    OrderWithItems,
    PaymentStatus,
    Sale,
    TableStatus,
    utcnow,
)
from .repositories import DuplicateSaleError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
# Largest amount a Numeric(10, 2) column holds
MAX_AMOUNT = Decimal("99999999.99")
DEFAULT_PAYMENT_METHOD = "cash"

T = TypeVar("T")


class OrderErrorKind(str, Enum):
    validation = "validation"
    not_found = "not_found"


@dataclass(frozen=True)
class OrderError:
    kind: OrderErrorKind
    message: str


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: OrderError


def _validation(message: str) -> Err:
    return Err(OrderError(OrderErrorKind.validation, message))


def _not_found(message: str) -> Err:
    return Err(OrderError(OrderErrorKind.not_found, message))


class InvalidPriceError(ValueError):
    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid price: {value!r}")


def parse_price(value: Any) -> Decimal:
    """Parse a submitted price into a non-negative Decimal rounded to cents."""
    if isinstance(value, bool) or value is None:
        raise InvalidPriceError(value)
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidPriceError(value)
    if not price.is_finite() or price < 0 or price > MAX_AMOUNT:
        raise InvalidPriceError(value)
    try:
        return price.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidPriceError(value)


def compute_order_total(items: Iterable[tuple[Decimal, int]]) -> Decimal:
    """Sum of unit price x quantity, in cents precision."""
    total = sum((price * quantity for price, quantity in items), Decimal("0"))
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


def describe_sale(order: OrderWithItems) -> str:
    names = [
        item.product.name if item.product else f"Product #{item.product_id}"
        for item in order.items
    ]
    return f"Order #{order.id} - {', '.join(names)}"


class OrderLifecycle:
    """Applies order creation, update and deletion together with their side effects."""

    def __init__(self, orders, tables, sales):
        self.orders = orders
        self.tables = tables
        self.sales = sales

    # ============ CREATE ============

    def create_order(self, data: OrderCreate) -> Ok[OrderWithItems] | Err:
        if not data.order_items:
            return _validation("Order must have at least one item")

        try:
            prices = [parse_price(item.price) for item in data.order_items]
        except InvalidPriceError as e:
            return _validation(str(e))

        try:
            total = compute_order_total(
                (price, item.quantity) for price, item in zip(prices, data.order_items)
            )
        except InvalidOperation:
            total = None
        if total is None or total > MAX_AMOUNT:
            return _validation(f"Order total exceeds {MAX_AMOUNT}")

        if self.tables.get_table(data.table_id) is None:
            return _not_found("Table not found")

        order = self.orders.create_order(Order(
            table_id=data.table_id,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            payment_method=data.payment_method or DEFAULT_PAYMENT_METHOD,
            notes=data.notes,
            total=total,
            status=OrderStatus.pending,
            payment_status=PaymentStatus.pending,
        ))
        logger.info(f"Order #{order.id} created for table {order.table_id} (total {total})")

        self._set_table_status(order, TableStatus.occupied)

        for item, price in zip(data.order_items, prices):
            self.orders.create_order_item(OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                quantity=item.quantity,
                price=price,
                notes=item.notes,
            ))

        return Ok(self.orders.get_order_with_items(order.id))

    # ============ UPDATE ============

    def update_order(self, order_id: int, patch: dict[str, Any]) -> Ok[Order] | Err:
        """Apply a partial update; only keys present in `patch` are written."""
        if not patch:
            return _validation("No fields to update")

        fields = dict(patch)
        if "status" in fields:
            if fields["status"] == OrderStatus.completed:
                # Completion settles payment, whatever the client sent
                fields["payment_status"] = PaymentStatus.paid
                fields["completed_at"] = utcnow()
            else:
                fields["completed_at"] = None

        order = self.orders.update_order(order_id, fields)
        if order is None:
            return _not_found("Order not found")

        if "status" in fields:
            self._sync_table_status(order)

        if order.status == OrderStatus.completed and order.payment_status == PaymentStatus.paid:
            self._materialize_sale(order)

        return Ok(order)

    # ============ DELETE ============

    def delete_order(self, order_id: int) -> Ok[Order] | Err:
        """Soft-delete an order and release its table if nothing else is seated there."""
        order = self.orders.delete_order(order_id)
        if order is None:
            return _not_found("Order not found")
        logger.info(f"Order #{order.id} moved to archives")
        if order.status not in CLOSED_ORDER_STATUSES:
            self._sync_table_status(order, releasing=True)
        return Ok(order)

    # ============ SIDE EFFECTS ============

    def _closing_table_status(self, order: Order) -> TableStatus:
        others = [
            o for o in self.orders.get_active_orders()
            if o.table_id == order.table_id
            and o.id != order.id
            and o.status not in CLOSED_ORDER_STATUSES
        ]
        return TableStatus.occupied if others else TableStatus.available

    def _sync_table_status(self, order: Order, releasing: bool = False) -> None:
        try:
            if releasing or order.status in CLOSED_ORDER_STATUSES:
                new_status = self._closing_table_status(order)
            else:
                new_status = TableStatus.occupied
        except Exception as e:
            logger.error(f"Could not compute table status for order #{order.id}: {e}", exc_info=True)
            return
        self._set_table_status(order, new_status)

    def _set_table_status(self, order: Order, new_status: TableStatus) -> None:
        try:
            table = self.tables.update_table(order.table_id, {"status": new_status})
        except Exception as e:
            logger.error(
                f"Error updating table {order.table_id} to {new_status.value} for order #{order.id}: {e}",
                exc_info=True,
            )
            return
        if table is None:
            logger.warning(f"Table {order.table_id} for order #{order.id} not found, status left unchanged")

    def _materialize_sale(self, order: Order) -> None:
        try:
            details = self.orders.get_order_with_items(order.id)
            if details is None:
                logger.warning(f"Order #{order.id} disappeared before its sale could be recorded")
                return

            if self.sales.get_sales_by_order_id(order.id):
                logger.info(f"Sale already recorded for order #{order.id}")
                return

            self.sales.create_sale(Sale(
                order_id=order.id,
                amount=order.total,
                payment_method=order.payment_method or DEFAULT_PAYMENT_METHOD,
                description=describe_sale(details),
            ))
            logger.info(f"Sale recorded for completed order #{order.id}")
        except DuplicateSaleError:
            logger.info(f"Sale already recorded for order #{order.id}")
        except Exception as e:
            logger.error(f"Error recording sale for completed order #{order.id}: {e}", exc_info=True)
