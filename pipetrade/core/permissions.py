from typing import Dict, List

from fastapi import HTTPException, status

from pipetrade.models.user import Role, User


ACTIONS = ("read", "write", "delete", "approve")

ALL_ROLES = [role.value for role in Role]

_DISPATCH_ACCESS = {
    "read": ["STORES", "SALES", "ACCOUNTS", "MANAGEMENT", "ADMIN"],
    "write": ["STORES", "ADMIN"],
    "delete": ["STORES", "ADMIN"],
    "approve": ["MANAGEMENT", "ADMIN"],
}

# module -> action -> roles allowed
MODULE_ACCESS: Dict[str, Dict[str, List[str]]] = {
    "quotation": {
        "read": ["SALES", "MANAGEMENT", "ADMIN"],
        "write": ["SALES", "ADMIN"],
        "delete": ["SALES", "ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "salesOrder": {
        "read": ["SALES", "PURCHASE", "STORES", "MANAGEMENT", "ADMIN"],
        "write": ["SALES", "ADMIN"],
        "delete": ["SALES", "ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "purchaseRequisition": {
        "read": ["PURCHASE", "SALES", "MANAGEMENT", "ADMIN"],
        "write": ["PURCHASE", "SALES", "ADMIN"],
        "delete": ["PURCHASE", "ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "purchaseOrder": {
        "read": ["PURCHASE", "STORES", "QC", "MANAGEMENT", "ADMIN"],
        "write": ["PURCHASE", "ADMIN"],
        "delete": ["PURCHASE", "ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "grn": {
        "read": ["STORES", "QC", "PURCHASE", "MANAGEMENT", "ADMIN"],
        "write": ["STORES", "ADMIN"],
        "delete": ["STORES", "ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "inventory": {
        "read": ["STORES", "SALES", "QC", "MANAGEMENT", "ADMIN"],
        "write": ["STORES", "ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "stockIssue": {
        "read": ["STORES", "SALES", "MANAGEMENT", "ADMIN"],
        "write": ["STORES", "ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "inspection": {
        "read": ["QC", "STORES", "MANAGEMENT", "ADMIN"],
        "write": ["QC", "ADMIN"],
        "delete": ["QC", "ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "qcRelease": {
        "read": ["QC", "STORES", "MANAGEMENT", "ADMIN"],
        "write": ["QC", "ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "ncr": {
        "read": ["QC", "PURCHASE", "MANAGEMENT", "ADMIN"],
        "write": ["QC", "ADMIN"],
        "delete": ["QC", "ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "packingList": _DISPATCH_ACCESS,
    "dispatchNote": _DISPATCH_ACCESS,
    "dispatch": _DISPATCH_ACCESS,
    "invoice": {
        "read": ["ACCOUNTS", "SALES", "MANAGEMENT", "ADMIN"],
        "write": ["ACCOUNTS", "ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "payment": {
        "read": ["ACCOUNTS", "MANAGEMENT", "ADMIN"],
        "write": ["ACCOUNTS", "ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["MANAGEMENT", "ADMIN"],
    },
    "masters": {
        "read": ALL_ROLES,
        "write": ["ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["ADMIN"],
    },
    "reports": {
        "read": ALL_ROLES,
        "write": ["ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["ADMIN"],
    },
    "admin": {
        "read": ["ADMIN"],
        "write": ["ADMIN"],
        "delete": ["ADMIN"],
        "approve": ["ADMIN"],
    },
}


def has_access(role: str, module: str, action: str) -> bool:
    """Check whether a role may perform an action on a module.

    Unknown modules and actions are denied.
    """
    module_access = MODULE_ACCESS.get(module)
    if not module_access:
        return False
    return role in module_access.get(action, [])


def get_accessible_modules(role: str) -> List[str]:
    """Modules the role can at least read (drives menu visibility)."""
    return [module for module in MODULE_ACCESS if has_access(role, module, "read")]


class AccessChecker:
    """
    Access checker for one authenticated user.

    Wraps the static matrix so endpoints can ask about a user instead
    of a role string.
    """

    def __init__(self, user: User):
        self.user = user
        self.role = user.role

    def can(self, module: str, action: str) -> bool:
        return has_access(self.role, module, action)

    def is_any(self, *roles: str) -> bool:
        return self.role in roles

    def check(self, module: str, action: str) -> None:
        """Raise 403 when the user's role may not perform the action."""
        if not self.can(module, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Access denied. Your role ({self.role}) does not have "
                    f"{action} access to this module."
                ),
            )


def check_access(user: User | None, module: str, action: str) -> User:
    """
    Guard used outside the dependency system.

    Raises 401 when there is no user and 403 when the role is not
    allowed. Returns the user so callers can chain.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    AccessChecker(user).check(module, action)
    return user
