"""
Bookkeeping API Routes

- Sales (recorded automatically on order completion, or entered by hand)
- Expenses CRUD with soft delete
- Dashboard, daily and weekly figures

Days are UTC calendar days; weeks start on Monday.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Annotated, Iterable

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, col, select

from . import models
from .db import get_session
from .models import Expense, Sale, TableStatus
from .permissions import Permissions
from .repositories import DuplicateSaleError, OrderRepository, SaleRepository, TableRepository
from .security import PermissionChecker

logger = logging.getLogger(__name__)

router = APIRouter()

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
ZERO = Decimal("0.00")


def get_sale_repository(session: Session = Depends(get_session)) -> SaleRepository:
    return SaleRepository(session)


def _sum_amounts(rows: Iterable) -> Decimal:
    return sum((row.amount for row in rows), ZERO)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _live_expenses(session: Session, start: datetime | None = None, end: datetime | None = None) -> list[Expense]:
    statement = select(Expense).where(col(Expense.deleted_at).is_(None))
    if start is not None:
        statement = statement.where(Expense.created_at >= start, Expense.created_at < end)
    return list(session.exec(statement.order_by(col(Expense.created_at).desc())).all())


# ============ SALES ============

@router.get("/sales", response_model=list[Sale])
def list_sales(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.SALES_VIEW))],
    sales: SaleRepository = Depends(get_sale_repository),
):
    return sales.get_sales()


@router.post("/sales", response_model=Sale, status_code=status.HTTP_201_CREATED)
def create_sale(
    sale_data: models.SaleCreate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.SALES_CREATE))],
    sales: SaleRepository = Depends(get_sale_repository),
):
    """Record a sale by hand. An order can carry at most one live sale."""
    if sale_data.order_id is not None:
        if OrderRepository(sales.session).get_order(sale_data.order_id) is None:
            raise HTTPException(status_code=404, detail="Order not found")
        if sales.get_sales_by_order_id(sale_data.order_id):
            raise HTTPException(status_code=409, detail="A sale already exists for this order")

    try:
        sale = sales.create_sale(Sale.model_validate(sale_data))
    except DuplicateSaleError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"Manual sale #{sale.id} of {sale.amount} recorded by {current_user.username}")
    return sale


@router.delete("/sales/{sale_id}")
def delete_sale(
    sale_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.SALES_DELETE))],
    sales: SaleRepository = Depends(get_sale_repository),
) -> dict:
    if not sales.delete_sale(sale_id):
        raise HTTPException(status_code=404, detail="Sale not found")
    return {"status": "deleted", "id": sale_id}


# ============ EXPENSES ============

def _get_live_expense(session: Session, expense_id: int) -> Expense:
    expense = session.exec(
        select(Expense).where(Expense.id == expense_id, col(Expense.deleted_at).is_(None))
    ).first()
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


@router.get("/expenses", response_model=list[Expense])
def list_expenses(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.EXPENSES_VIEW))],
    session: Session = Depends(get_session),
):
    return _live_expenses(session)


@router.post("/expenses", response_model=Expense, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense_data: models.ExpenseCreate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.EXPENSES_CREATE))],
    session: Session = Depends(get_session),
):
    expense = Expense.model_validate(expense_data)
    session.add(expense)
    session.commit()
    session.refresh(expense)
    return expense


@router.put("/expenses/{expense_id}", response_model=Expense)
def update_expense(
    expense_id: int,
    expense_update: models.ExpenseUpdate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.EXPENSES_EDIT))],
    session: Session = Depends(get_session),
):
    expense = _get_live_expense(session, expense_id)
    changes = {k: v for k, v in expense_update.model_dump(exclude_unset=True).items() if v is not None}
    expense.sqlmodel_update(changes)
    session.add(expense)
    session.commit()
    session.refresh(expense)
    return expense


@router.delete("/expenses/{expense_id}")
def delete_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.EXPENSES_DELETE))],
    session: Session = Depends(get_session),
) -> dict:
    expense = _get_live_expense(session, expense_id)
    expense.deleted_at = models.utcnow()
    session.add(expense)
    session.commit()
    return {"status": "deleted", "id": expense_id}


# ============ DASHBOARD ============

@router.get("/dashboard", response_model=models.DashboardStats)
def get_dashboard(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ANALYTICS_VIEW))],
    session: Session = Depends(get_session),
):
    sales = SaleRepository(session).get_sales()
    orders = OrderRepository(session)
    active_orders = orders.get_active_orders()
    total_sales = _sum_amounts(sales)
    total_expenses = _sum_amounts(_live_expenses(session))

    available_tables = [
        t for t in TableRepository(session).list_tables()
        if t.status == TableStatus.available
    ]

    return models.DashboardStats(
        total_sales=total_sales,
        total_expenses=total_expenses,
        net_profit=total_sales - total_expenses,
        active_orders_count=len(active_orders),
        completed_orders_count=len(orders.get_completed_orders()),
        available_tables_count=len(available_tables),
        recent_sales=sales[:5],
        recent_orders=active_orders[:5],
    )


@router.get("/dashboard/daily", response_model=models.DailyStats)
def get_daily_stats(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ANALYTICS_VIEW))],
    session: Session = Depends(get_session),
    day: date | None = None,
):
    """Sales, expenses, profit and order count for one day (today by default)."""
    day = day or datetime.now(timezone.utc).date()
    start, end = _day_bounds(day)

    total_sales = _sum_amounts(SaleRepository(session).get_sales_between(start, end))
    total_expenses = _sum_amounts(_live_expenses(session, start, end))
    return models.DailyStats(
        day=day,
        total_sales=total_sales,
        total_expenses=total_expenses,
        profit=total_sales - total_expenses,
        order_count=len(OrderRepository(session).get_orders_between(start, end)),
    )


@router.get("/dashboard/weekly", response_model=list[models.WeekdayStats])
def get_weekly_stats(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ANALYTICS_VIEW))],
    session: Session = Depends(get_session),
):
    """Per-day sales and order counts for the current Monday-to-Sunday week."""
    today = datetime.now(timezone.utc).date()
    monday = today - timedelta(days=today.weekday())
    sales = SaleRepository(session)
    orders = OrderRepository(session)

    week = []
    for offset, label in enumerate(WEEKDAY_LABELS):
        day = monday + timedelta(days=offset)
        start, end = _day_bounds(day)
        week.append(models.WeekdayStats(
            label=label,
            day=day,
            sales=_sum_amounts(sales.get_sales_between(start, end)),
            orders=len(orders.get_orders_between(start, end)),
        ))
    return week
