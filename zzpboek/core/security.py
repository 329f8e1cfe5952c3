"""
Security Core - roles and permissions per administratie.

Authentication happens in front of this service; the caller's role arrives in
the `X-Role` header (expert = boekhouder, client = ondernemer, viewer).
"""

from enum import Enum

from fastapi import Header, HTTPException, status


class UserRole(str, Enum):
    EXPERT = "expert"
    CLIENT = "client"
    VIEWER = "viewer"


class Permission(str, Enum):
    ENTRY_CREATE = "ENTRY_CREATE"
    ENTRY_FINALIZE = "ENTRY_FINALIZE"
    ENTRY_DELETE = "ENTRY_DELETE"
    BANK_IMPORT = "BANK_IMPORT"
    BANK_BOOK = "BANK_BOOK"
    INVOICE_BOOK = "INVOICE_BOOK"
    REPORT_VIEW = "REPORT_VIEW"
    REPORT_EXPORT = "REPORT_EXPORT"
    SETTINGS_EDIT = "SETTINGS_EDIT"
    ADMIN_RESET = "ADMIN_RESET"


ROLE_PERMISSIONS: dict[UserRole, list[Permission]] = {
    UserRole.EXPERT: list(Permission),
    UserRole.CLIENT: [
        Permission.ENTRY_CREATE,
        Permission.BANK_IMPORT,
        Permission.BANK_BOOK,
        Permission.INVOICE_BOOK,
        Permission.REPORT_VIEW,
        Permission.REPORT_EXPORT,
        Permission.SETTINGS_EDIT,
    ],
    UserRole.VIEWER: [Permission.REPORT_VIEW],
}


class RBACService:
    def has_permission(self, role: UserRole, permission: Permission) -> bool:
        return permission in ROLE_PERMISSIONS.get(role, [])

    def get_user_permissions(self, role: UserRole) -> list[Permission]:
        return ROLE_PERMISSIONS.get(role, [])


def get_current_role(x_role: str = Header(default=UserRole.EXPERT.value)) -> UserRole:
    try:
        return UserRole(x_role.lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Onbekende rol: {x_role}")


def require_permission(permission: Permission):
    """FastAPI dependency factory: reject callers whose role lacks `permission`."""

    def checker(x_role: str = Header(default=UserRole.EXPERT.value)) -> UserRole:
        role = get_current_role(x_role)
        if not RBACService().has_permission(role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Rol '{role.value}' heeft geen recht op {permission.value}",
            )
        return role

    return checker
