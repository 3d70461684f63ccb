# Overview: Sale operation codes and the default role grants used by the access policy.
# Each operation is defined as: (code, name, description)

from __future__ import annotations

from .models import UserRole


class SaleOperation:
    VIEW = "VIEW_SALE"
    LIST_ALL = "VIEW_ALL_SALES"
    CREATE = "CREATE_SALE"
    EDIT = "EDIT_SALE"
    SUBMIT = "SUBMIT_SALE"
    CONFIRM = "CONFIRM_SALE"
    COMPLETE = "COMPLETE_SALE"
    CANCEL = "CANCEL_SALE"


SALE_OPERATION_DEFINITIONS = [
    (
        SaleOperation.VIEW,
        "View Sale",
        "View a sale document and its items",
    ),
    (
        SaleOperation.LIST_ALL,
        "View All Sales",
        "List sales owned by any user (otherwise only own sales)",
    ),
    (
        SaleOperation.CREATE,
        "Create Sale",
        "Create new DRAFT sales",
    ),
    (
        SaleOperation.EDIT,
        "Edit Sale",
        "Change fields, discount and items of DRAFT/PENDING sales",
    ),
    (
        SaleOperation.SUBMIT,
        "Submit Sale",
        "Move a DRAFT sale to PENDING",
    ),
    (
        SaleOperation.CONFIRM,
        "Confirm Sale",
        "Confirm a PENDING sale and reserve its stock",
    ),
    (
        SaleOperation.COMPLETE,
        "Complete Sale",
        "Mark a CONFIRMED sale as COMPLETED",
    ),
    (
        SaleOperation.CANCEL,
        "Cancel Sale",
        "Cancel a sale, releasing stock if it was CONFIRMED",
    ),
]

ALL_SALE_OPERATIONS = frozenset(code for code, _, _ in SALE_OPERATION_DEFINITIONS)


# Roles that may act on sales they do not own
ELEVATED_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})

DEFAULT_ROLE_OPERATIONS: dict[UserRole, frozenset[str]] = {
    UserRole.ADMIN: ALL_SALE_OPERATIONS,
    UserRole.MANAGER: ALL_SALE_OPERATIONS,
    UserRole.SALESPERSON: ALL_SALE_OPERATIONS - {SaleOperation.LIST_ALL},
}


def validate_operation_code(code: str) -> bool:
    return code in ALL_SALE_OPERATIONS
