"""
Repositories

Thin persistence wrappers over a SQLModel session, one per entity the order
lifecycle touches. Each write commits on its own: there is no transaction
spanning an order, its table and its sale.

The coordinator in `order_lifecycle` only relies on the public methods here,
so tests can hand it in-memory stand-ins with the same names.
"""

from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from .models import (
    CLOSED_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderItemWithProduct,
    OrderStatus,
    OrderWithItems,
    Product,
    Sale,
    Table,
    utcnow,
)


class DuplicateSaleError(Exception):
    """Raised when an order already has a live (non-deleted) sale."""
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order #{order_id} already has a sale")


def _loaded_fields(obj: Any, model) -> dict[str, Any]:
    # getattr reloads attributes expired by an earlier commit, model_dump does not
    return {name: getattr(obj, name) for name in model.model_fields}


def _apply_fields(obj: Any, fields: dict[str, Any]) -> None:
    for key, value in fields.items():
        setattr(obj, key, value)


class _SessionRepository:
    def __init__(self, session: Session):
        self.session = session

    def _save(self, obj):
        self.session.add(obj)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(obj)
        return obj


class OrderRepository(_SessionRepository):
    def create_order(self, order: Order) -> Order:
        return self._save(order)

    def create_order_item(self, item: OrderItem) -> OrderItem:
        return self._save(item)

    def get_order(self, order_id: int, include_deleted: bool = False) -> Order | None:
        statement = select(Order).where(Order.id == order_id)
        if not include_deleted:
            statement = statement.where(col(Order.deleted_at).is_(None))
        return self.session.exec(statement).first()

    def update_order(self, order_id: int, fields: dict[str, Any]) -> Order | None:
        """Apply a partial update. Soft-deleted orders count as missing."""
        order = self.get_order(order_id)
        if order is None:
            return None
        _apply_fields(order, fields)
        return self._save(order)

    def delete_order(self, order_id: int) -> Order | None:
        order = self.get_order(order_id)
        if order is None:
            return None
        order.deleted_at = utcnow()
        return self._save(order)

    def get_items(self, order_id: int) -> list[OrderItemWithProduct]:
        rows = self.session.exec(
            select(OrderItem, Product)
            .join(Product, col(OrderItem.product_id) == Product.id, isouter=True)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
        ).all()
        return [
            OrderItemWithProduct(**_loaded_fields(item, OrderItem), product=product)
            for item, product in rows
        ]

    def with_items(self, order: Order) -> OrderWithItems:
        return OrderWithItems(**_loaded_fields(order, Order), items=self.get_items(order.id))

    def get_order_with_items(self, order_id: int, include_deleted: bool = False) -> OrderWithItems | None:
        order = self.get_order(order_id, include_deleted=include_deleted)
        if order is None:
            return None
        return self.with_items(order)

    def get_active_orders(self) -> list[Order]:
        return list(self.session.exec(
            select(Order)
            .where(
                col(Order.status).not_in(CLOSED_ORDER_STATUSES),
                col(Order.deleted_at).is_(None),
            )
            .order_by(col(Order.created_at).desc())
        ).all())

    def get_completed_orders(self) -> list[Order]:
        return list(self.session.exec(
            select(Order)
            .where(
                Order.status == OrderStatus.completed,
                col(Order.deleted_at).is_(None),
            )
            .order_by(col(Order.completed_at).desc())
        ).all())

    def list_orders(self, active_only: bool = False) -> list[OrderWithItems]:
        if active_only:
            orders = self.get_active_orders()
        else:
            orders = self.session.exec(
                select(Order)
                .where(col(Order.deleted_at).is_(None))
                .order_by(col(Order.created_at).desc())
            ).all()
        return [self.with_items(order) for order in orders]

    def list_deleted_orders(self) -> list[OrderWithItems]:
        orders = self.session.exec(
            select(Order)
            .where(col(Order.deleted_at).is_not(None))
            .order_by(col(Order.deleted_at).desc())
        ).all()
        return [self.with_items(order) for order in orders]

    def get_orders_between(self, start: datetime, end: datetime) -> list[Order]:
        return list(self.session.exec(
            select(Order).where(
                Order.created_at >= start,
                Order.created_at < end,
                col(Order.deleted_at).is_(None),
            )
        ).all())


class TableRepository(_SessionRepository):
    def get_table(self, table_id: int) -> Table | None:
        return self.session.get(Table, table_id)

    def get_table_by_number(self, number: int) -> Table | None:
        return self.session.exec(select(Table).where(Table.number == number)).first()

    def list_tables(self) -> list[Table]:
        return list(self.session.exec(select(Table).order_by(Table.number)).all())

    def create_table(self, table: Table) -> Table:
        return self._save(table)

    def update_table(self, table_id: int, fields: dict[str, Any]) -> Table | None:
        table = self.get_table(table_id)
        if table is None:
            return None
        _apply_fields(table, fields)
        return self._save(table)

    def is_referenced(self, table_id: int) -> bool:
        return self.session.exec(
            select(Order.id).where(Order.table_id == table_id)
        ).first() is not None

    def delete_table(self, table_id: int) -> bool:
        table = self.get_table(table_id)
        if table is None:
            return False
        self.session.delete(table)
        self.session.commit()
        return True


class SaleRepository(_SessionRepository):
    def get_sales(self) -> list[Sale]:
        return list(self.session.exec(
            select(Sale)
            .where(col(Sale.deleted_at).is_(None))
            .order_by(col(Sale.created_at).desc(), col(Sale.id).desc())
        ).all())

    def get_sales_by_order_id(self, order_id: int) -> list[Sale]:
        return list(self.session.exec(
            select(Sale).where(
                Sale.order_id == order_id,
                col(Sale.deleted_at).is_(None),
            )
        ).all())

    def get_sales_between(self, start: datetime, end: datetime) -> list[Sale]:
        return list(self.session.exec(
            select(Sale).where(
                Sale.created_at >= start,
                Sale.created_at < end,
                col(Sale.deleted_at).is_(None),
            )
        ).all())

    def create_sale(self, sale: Sale) -> Sale:
        """Insert a sale; the partial unique index on order_id rejects a second live sale."""
        try:
            return self._save(sale)
        except IntegrityError:
            if sale.order_id is None:
                raise
            raise DuplicateSaleError(sale.order_id)

    def delete_sale(self, sale_id: int) -> bool:
        sale = self.session.exec(
            select(Sale).where(Sale.id == sale_id, col(Sale.deleted_at).is_(None))
        ).first()
        if sale is None:
            return False
        sale.deleted_at = utcnow()
        self._save(sale)
        return True
