from enum import Enum
from typing import Iterable, Set

from .models import User, UserRole


class Permissions(str, Enum):
    # Products / Menu
    PRODUCTS_VIEW = "products.view"
    PRODUCTS_CREATE = "products.create"
    PRODUCTS_EDIT = "products.edit"
    PRODUCTS_DELETE = "products.delete"
    PRODUCTS_ARCHIVE = "products.archive"

    # Categories
    CATEGORIES_VIEW = "categories.view"
    CATEGORIES_CREATE = "categories.create"
    CATEGORIES_EDIT = "categories.edit"
    CATEGORIES_DELETE = "categories.delete"

    # Orders
    ORDERS_VIEW = "orders.view"
    ORDERS_CREATE = "orders.create"
    ORDERS_EDIT = "orders.edit"
    ORDERS_DELETE = "orders.delete"
    ORDERS_UPDATE_STATUS = "orders.update_status"

    # Sales
    SALES_VIEW = "sales.view"
    SALES_CREATE = "sales.create"
    SALES_DELETE = "sales.delete"
    SALES_EXPORT = "sales.export"

    # Expenses
    EXPENSES_VIEW = "expenses.view"
    EXPENSES_CREATE = "expenses.create"
    EXPENSES_EDIT = "expenses.edit"
    EXPENSES_DELETE = "expenses.delete"

    # Tables
    TABLES_VIEW = "tables.view"
    TABLES_CREATE = "tables.create"
    TABLES_EDIT = "tables.edit"
    TABLES_DELETE = "tables.delete"
    TABLES_GENERATE_QR = "tables.generate_qr"

    # Analytics
    ANALYTICS_VIEW = "analytics.view"
    ANALYTICS_EXPORT = "analytics.export"

    # Users
    USERS_VIEW = "users.view"
    USERS_CREATE = "users.create"
    USERS_EDIT = "users.edit"
    USERS_DELETE = "users.delete"
    USERS_MANAGE_PERMISSIONS = "users.manage_permissions"

    # Settings
    CONFIG_VIEW = "config.view"
    CONFIG_EDIT = "config.edit"
    CONFIG_PAYMENT_METHODS = "config.payment_methods"

    # Archives
    ARCHIVES_VIEW = "archives.view"
    ARCHIVES_RESTORE = "archives.restore"


P = Permissions

DEFAULT_PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.admin: [p.value for p in Permissions],
    UserRole.manager: [
        p.value for p in (
            P.PRODUCTS_VIEW, P.PRODUCTS_CREATE, P.PRODUCTS_EDIT, P.PRODUCTS_DELETE, P.PRODUCTS_ARCHIVE,
            P.CATEGORIES_VIEW, P.CATEGORIES_CREATE, P.CATEGORIES_EDIT, P.CATEGORIES_DELETE,
            P.ORDERS_VIEW, P.ORDERS_CREATE, P.ORDERS_EDIT, P.ORDERS_UPDATE_STATUS,
            P.SALES_VIEW, P.SALES_CREATE, P.SALES_DELETE, P.SALES_EXPORT,
            P.EXPENSES_VIEW, P.EXPENSES_CREATE, P.EXPENSES_EDIT, P.EXPENSES_DELETE,
            P.TABLES_VIEW, P.TABLES_CREATE, P.TABLES_EDIT, P.TABLES_GENERATE_QR,
            P.ANALYTICS_VIEW, P.ANALYTICS_EXPORT,
            P.USERS_VIEW, P.USERS_CREATE, P.USERS_EDIT,
            P.CONFIG_VIEW, P.CONFIG_EDIT,
            P.ARCHIVES_VIEW, P.ARCHIVES_RESTORE,
        )
    ],
    UserRole.employee: [
        p.value for p in (
            P.PRODUCTS_VIEW,
            P.CATEGORIES_VIEW,
            P.ORDERS_VIEW, P.ORDERS_CREATE, P.ORDERS_UPDATE_STATUS,
            P.SALES_VIEW, P.SALES_CREATE,
            P.EXPENSES_VIEW, P.EXPENSES_CREATE,
            P.TABLES_VIEW,
            P.ANALYTICS_VIEW,
        )
    ],
    UserRole.cashier: [
        p.value for p in (
            P.PRODUCTS_VIEW,
            P.CATEGORIES_VIEW,
            P.ORDERS_VIEW, P.ORDERS_UPDATE_STATUS,
            P.SALES_VIEW, P.SALES_CREATE, P.SALES_EXPORT,
            P.TABLES_VIEW,
            P.ANALYTICS_VIEW,
        )
    ],
}


class PermissionService:
    @staticmethod
    def get_user_permissions(user: User) -> Set[str]:
        """Get all permissions granted to a user."""
        if not user.is_active:
            return set()
        return set(user.permissions or [])

    @staticmethod
    def has_any_permission(user: User, required: Iterable[str]) -> bool:
        """Check if user holds at least one of the required permissions."""
        perms = PermissionService.get_user_permissions(user)
        return any(str(getattr(p, "value", p)) in perms for p in required)

    @staticmethod
    def default_permissions(role: UserRole) -> list[str]:
        return list(DEFAULT_PERMISSIONS.get(role, []))
