"""
RBAC (Role-Based Access Control) permission system
"""

from enum import Enum
from typing import Set


class Role(str, Enum):
    SYSTEM_ADMIN = "system_admin"   # Platform operator, not bound to a tenant
    TENANT_ADMIN = "tenant_admin"
    MANAGER = "manager"
    STAFF = "staff"


class Permission(str, Enum):
    """Permission definitions"""
    # Tenant registry permissions
    TENANT_VIEW = "tenant:view"
    TENANT_UPDATE = "tenant:update"
    TENANT_DELETE = "tenant:delete"

    # Operator-only permissions
    TENANT_LIST = "tenant:list"
    TENANT_SUSPEND = "tenant:suspend"
    TENANT_PURGE = "tenant:purge"
    TENANT_RECONCILE = "tenant:reconcile"

    # Outlet permissions
    OUTLET_VIEW = "outlet:view"
    OUTLET_EDIT = "outlet:edit"


# Role permission mapping
ROLE_PERMISSIONS = {
    Role.SYSTEM_ADMIN: {
        # Operators enumerate and manage tenants but never read tenant data
        Permission.TENANT_LIST,
        Permission.TENANT_SUSPEND,
        Permission.TENANT_PURGE,
        Permission.TENANT_RECONCILE,
    },
    Role.TENANT_ADMIN: {
        Permission.TENANT_VIEW,
        Permission.TENANT_UPDATE,
        Permission.TENANT_DELETE,
        Permission.OUTLET_VIEW,
        Permission.OUTLET_EDIT,
    },
    Role.MANAGER: {
        Permission.TENANT_VIEW,
        Permission.OUTLET_VIEW,
        Permission.OUTLET_EDIT,
    },
    Role.STAFF: {
        Permission.TENANT_VIEW,
        Permission.OUTLET_VIEW,
    },
}


def get_permissions_for_role(role: str) -> Set[Permission]:
    """Get permissions for a given role"""
    if not role:
        return set()
    try:
        return ROLE_PERMISSIONS.get(Role(role.lower()), set())
    except ValueError:
        return set()


def has_permission(required_permission: Permission, user_permissions: Set[Permission]) -> bool:
    """Check if user has required permission"""
    return required_permission in user_permissions
