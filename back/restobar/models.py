from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import JSON, Column, Index, Numeric, text
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TableStatus(str, Enum):
    available = "available"
    occupied = "occupied"
    reserved = "reserved"


class OrderStatus(str, Enum):
    pending = "pending"
    preparing = "preparing"
    ready = "ready"
    completed = "completed"
    cancelled = "cancelled"


# Orders in these states no longer hold their table
CLOSED_ORDER_STATUSES = (OrderStatus.completed, OrderStatus.cancelled)


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"


class UserRole(str, Enum):
    admin = "admin"
    manager = "manager"
    employee = "employee"
    cashier = "cashier"


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    hashed_password: str
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: UserRole = Field(default=UserRole.employee)
    # Permission strings, e.g. ["orders.view", "orders.create"]
    permissions: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    created_by: int | None = Field(default=None, foreign_key="user.id")


class Category(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Product(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str
    description: str | None = None
    price: Decimal = Field(sa_type=Numeric(10, 2))
    category_id: int | None = Field(default=None, foreign_key="category.id", index=True)
    image_filename: str | None = None  # Stored in uploads/products/
    available: bool = Field(default=True)
    archived: bool = Field(default=False, index=True)  # Set instead of deleting once ordered
    created_at: datetime = Field(default_factory=utcnow)


class Table(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    number: int = Field(unique=True, index=True)
    capacity: int = Field(default=4)
    qr_code: str
    status: TableStatus = Field(default=TableStatus.available)
    created_at: datetime = Field(default_factory=utcnow)


class OrderBase(SQLModel):
    table_id: int = Field(foreign_key="table.id", index=True)
    customer_name: str | None = None
    customer_phone: str | None = None
    status: OrderStatus = Field(default=OrderStatus.pending, index=True)
    payment_method: str | None = None  # 'cash', 'orange_money', 'wave', ...
    payment_status: PaymentStatus = Field(default=PaymentStatus.pending)
    total: Decimal = Field(default=Decimal("0.00"), sa_type=Numeric(10, 2))
    notes: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    deleted_at: datetime | None = Field(default=None, index=True)  # Soft delete


class Order(OrderBase, table=True):
    id: int | None = Field(default=None, primary_key=True)


class OrderItemBase(SQLModel):
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    quantity: int = Field(default=1)
    price: Decimal = Field(sa_type=Numeric(10, 2))  # Snapshot of the price at order time
    notes: str | None = None


class OrderItem(OrderItemBase, table=True):
    id: int | None = Field(default=None, primary_key=True)


class Sale(SQLModel, table=True):
    # One live sale per order; manual sales (order_id NULL) are unconstrained
    __table_args__ = (
        Index(
            "uq_sale_live_order",
            "order_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    order_id: int | None = Field(default=None, foreign_key="order.id")
    amount: Decimal = Field(sa_type=Numeric(10, 2))
    payment_method: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
    deleted_at: datetime | None = None


class Expense(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    description: str
    amount: Decimal = Field(sa_type=Numeric(10, 2))
    category: str
    receipt_url: str | None = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
    deleted_at: datetime | None = None


# Read Models
class OrderItemWithProduct(OrderItemBase):
    id: int
    product: Product | None = None


class OrderWithItems(OrderBase):
    id: int
    items: list[OrderItemWithProduct] = Field(default_factory=list)


class MenuResponse(SQLModel):
    table: Table
    categories: list[Category]
    products: list[Product]


class ReceiptItem(SQLModel):
    name: str
    quantity: int
    price: Decimal
    total: Decimal


class Receipt(SQLModel):
    order_id: int
    customer_name: str | None = None
    customer_phone: str | None = None
    table_number: int | None = None
    items: list[ReceiptItem]
    subtotal: Decimal
    total: Decimal
    payment_method: str | None = None
    payment_date: datetime
    restaurant_name: str
    restaurant_address: str | None = None
    restaurant_phone: str | None = None


class DashboardStats(SQLModel):
    total_sales: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    active_orders_count: int
    completed_orders_count: int
    available_tables_count: int
    recent_sales: list[Sale]
    recent_orders: list[Order]


class DailyStats(SQLModel):
    day: date
    total_sales: Decimal
    total_expenses: Decimal
    profit: Decimal
    order_count: int


class WeekdayStats(SQLModel):
    label: str  # Mon .. Sun
    day: date
    sales: Decimal
    orders: int


class UserRead(SQLModel):
    id: int
    username: str
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: UserRole
    permissions: list[str]
    is_active: bool
    created_at: datetime


# Request/Response Models
class UserRegister(SQLModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: str | None = None


class UserCreate(SQLModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: UserRole = UserRole.employee
    permissions: list[str] | None = None  # Falls back to the role defaults


class UserUpdate(SQLModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: UserRole | None = None
    permissions: list[str] | None = None
    is_active: bool | None = None
    password: str | None = Field(default=None, min_length=6)


class CategoryCreate(SQLModel):
    name: str
    description: str | None = None


class CategoryUpdate(SQLModel):
    name: str | None = None
    description: str | None = None


class ProductCreate(SQLModel):
    name: str
    description: str | None = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category_id: int | None = None
    available: bool = True


class ProductUpdate(SQLModel):
    name: str | None = None
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category_id: int | None = None
    available: bool | None = None


class TableCreate(SQLModel):
    number: int = Field(ge=1)
    capacity: int = Field(default=4, ge=1)


class TableUpdate(SQLModel):
    number: int | None = Field(default=None, ge=1)
    capacity: int | None = Field(default=None, ge=1)
    status: TableStatus | None = None
    qr_code: str | None = None


class OrderItemCreate(SQLModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    price: str | float  # Parsed to Decimal by the order lifecycle
    notes: str | None = None


class OrderCreate(SQLModel):
    table_id: int
    customer_name: str
    customer_phone: str | None = None
    order_items: list[OrderItemCreate]
    payment_method: str | None = None
    notes: str | None = None


class OrderUpdate(SQLModel):
    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    payment_method: str | None = None
    notes: str | None = None
    total: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    customer_name: str | None = None
    customer_phone: str | None = None


class SaleCreate(SQLModel):
    order_id: int | None = None
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    payment_method: str = "cash"
    description: str | None = None


class ExpenseCreate(SQLModel):
    description: str
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category: str
    receipt_url: str | None = None


class ExpenseUpdate(SQLModel):
    description: str | None = None
    amount: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category: str | None = None
    receipt_url: str | None = None
