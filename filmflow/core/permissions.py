"""
Permission system for RBAC

Who the caller is comes from outside (see filmflow.api.deps); this module
only answers "may this role do that". Engine operations call
require_permission() at their entry point.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from filmflow.core.exceptions import PermissionDeniedError


class Role:
    ADMIN = "admin"
    SALES = "sales"
    WAREHOUSE = "warehouse"
    PRODUCTION = "production"
    SHIPPING = "shipping"
    ACCOUNTING = "accounting"

    ALL = (ADMIN, SALES, WAREHOUSE, PRODUCTION, SHIPPING, ACCOUNTING)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an engine operation."""
    user_id: Optional[int]
    role: str
    full_name: Optional[str] = None


class Permission:
    """
    Permission string format: "resource:action".
    """
    ORDERS_READ = "orders:read"
    ORDERS_CREATE = "orders:create"
    ORDERS_RECONCILE = "orders:reconcile"

    CUTTING_PLANS_CREATE = "cutting_plans:create"
    CUTTING_PLANS_TRANSITION = "cutting_plans:transition"

    CUTTING_ENTRIES_CREATE = "cutting_entries:create"
    CUTTING_ENTRIES_DELETE = "cutting_entries:delete"

    ORDER_STOCK_ENTRIES_CREATE = "order_stock_entries:create"
    ORDER_STOCK_ENTRIES_DELETE = "order_stock_entries:delete"

    BOBINS_CREATE = "production_bobins:create"
    BOBINS_UPDATE = "production_bobins:update"
    BOBINS_DELETE = "production_bobins:delete"

    STOCK_READ = "stock:read"
    STOCK_WRITE = "stock:write"

    AUDIT_READ = "audit:read"


ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    Role.ADMIN: frozenset(
        value for name, value in vars(Permission).items() if name.isupper()
    ),
    Role.SALES: frozenset({
        Permission.ORDERS_READ,
        Permission.ORDERS_CREATE,
        Permission.STOCK_READ,
    }),
    Role.WAREHOUSE: frozenset({
        Permission.ORDERS_READ,
        Permission.ORDER_STOCK_ENTRIES_CREATE,
        Permission.ORDER_STOCK_ENTRIES_DELETE,
        Permission.BOBINS_UPDATE,
        Permission.STOCK_READ,
        Permission.STOCK_WRITE,
    }),
    Role.PRODUCTION: frozenset({
        Permission.ORDERS_READ,
        Permission.CUTTING_PLANS_CREATE,
        Permission.CUTTING_PLANS_TRANSITION,
        Permission.CUTTING_ENTRIES_CREATE,
        Permission.BOBINS_CREATE,
        Permission.BOBINS_UPDATE,
        Permission.STOCK_READ,
    }),
    Role.SHIPPING: frozenset({
        Permission.ORDERS_READ,
    }),
    Role.ACCOUNTING: frozenset({
        Permission.ORDERS_READ,
        Permission.STOCK_READ,
        Permission.AUDIT_READ,
    }),
}

# Bobin status each role may set through a bobin update
BOBIN_STATUS_BY_ROLE: Dict[str, FrozenSet[str]] = {
    Role.ADMIN: frozenset({"produced", "warehouse", "ready"}),
    Role.PRODUCTION: frozenset({"produced", "ready"}),
    Role.WAREHOUSE: frozenset({"warehouse"}),
}

# Roles allowed to edit bobin notes
BOBIN_NOTES_ROLES = frozenset({Role.ADMIN, Role.PRODUCTION})


def has_permission(role: str, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def require_permission(actor: Actor, permission: str) -> None:
    """Raise PermissionDeniedError unless the actor's role grants permission."""
    if not has_permission(actor.role, permission):
        raise PermissionDeniedError(
            f"Role '{actor.role}' may not perform {permission}",
            details={"role": actor.role, "permission": permission},
        )


def can_set_bobin_status(role: str, status: str) -> bool:
    return status in BOBIN_STATUS_BY_ROLE.get(role, frozenset())


def can_edit_bobin_notes(role: str) -> bool:
    return role in BOBIN_NOTES_ROLES
