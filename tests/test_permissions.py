"""Static role/module access matrix."""

import pytest
from fastapi import HTTPException

from pipetrade.core.permissions import (
    MODULE_ACCESS,
    AccessChecker,
    check_access,
    get_accessible_modules,
    has_access,
)
from pipetrade.models.user import Role, User


def make_user(role: str) -> User:
    return User(email=f"{role.lower()}@pipetrade.in", name=role, password_hash="x", role=role, is_active=True)


@pytest.mark.parametrize("role,module,action,expected", [
    ("SALES", "quotation", "write", True),
    ("SALES", "quotation", "approve", False),
    ("MANAGEMENT", "quotation", "approve", True),
    ("PURCHASE", "purchaseOrder", "write", True),
    ("STORES", "purchaseOrder", "write", False),
    ("STORES", "grn", "write", True),
    ("QC", "inspection", "write", True),
    ("STORES", "inspection", "write", False),
    ("ACCOUNTS", "invoice", "write", True),
    ("SALES", "invoice", "write", False),
    ("SALES", "payment", "read", False),
    ("QC", "masters", "read", True),
    ("MANAGEMENT", "masters", "write", False),
    ("ADMIN", "admin", "write", True),
    ("MANAGEMENT", "admin", "read", False),
])
def test_has_access(role, module, action, expected):
    assert has_access(role, module, action) is expected


def test_unknown_module_or_action_is_denied():
    assert not has_access("ADMIN", "payroll", "read")
    assert not has_access("ADMIN", "quotation", "export")


def test_admin_can_do_everything():
    for module, actions in MODULE_ACCESS.items():
        for action in actions:
            assert has_access(Role.ADMIN.value, module, action), (module, action)


def test_every_module_defines_all_actions():
    for module, actions in MODULE_ACCESS.items():
        assert set(actions) == {"read", "write", "delete", "approve"}, module


def test_accessible_modules_for_accounts():
    modules = get_accessible_modules("ACCOUNTS")
    assert "invoice" in modules
    assert "payment" in modules
    assert "grn" not in modules
    assert "admin" not in modules


def test_access_checker_raises_403():
    checker = AccessChecker(make_user("STORES"))
    assert checker.can("grn", "write")
    assert checker.is_any("STORES", "QC")
    with pytest.raises(HTTPException) as exc:
        checker.check("invoice", "write")
    assert exc.value.status_code == 403
    assert exc.value.detail == (
        "Access denied. Your role (STORES) does not have write access to this module."
    )


def test_check_access_without_user_is_401():
    with pytest.raises(HTTPException) as exc:
        check_access(None, "quotation", "read")
    assert exc.value.status_code == 401


def test_check_access_returns_user():
    user = make_user("SALES")
    assert check_access(user, "salesOrder", "write") is user
