# Overview: Sale status state machine; the single place where status transitions are decided.

"""
Sale Lifecycle

================================================================================
STATE MACHINE:
    DRAFT -> PENDING -> CONFIRMED -> COMPLETED
      |         |           |
      +---------+-----------+--> CANCELLED

    DRAFT:      Being assembled. Items and fields editable. No stock held.
    PENDING:    Awaiting confirmation. Still editable. No stock held.
    CONFIRMED:  Stock decremented (reserved). Not editable.
    COMPLETED:  Terminal for normal flow. Only a refund workflow may move it.
    CANCELLED:  Terminal. Stock released if the sale had been CONFIRMED.
    REFUNDED:   Reserved terminal state; no operation here produces it.

RULES:
1. Every status check goes through SALE_STATUS_TRANSITIONS / EDITABLE_STATUSES.
2. No backwards movement and no skipping (DRAFT -> CONFIRMED is forbidden).
3. Inventory effects happen only at the CONFIRMED boundary (see sales_service).
================================================================================
"""

from __future__ import annotations

from ..errors import InvalidStateTransition, ValidationError
from ..models import Sale, SaleStatus


SALE_STATUS_TRANSITIONS: dict[SaleStatus, frozenset[SaleStatus]] = {
    SaleStatus.DRAFT: frozenset({SaleStatus.PENDING, SaleStatus.CANCELLED}),
    SaleStatus.PENDING: frozenset({SaleStatus.CONFIRMED, SaleStatus.CANCELLED}),
    SaleStatus.CONFIRMED: frozenset({SaleStatus.COMPLETED, SaleStatus.CANCELLED}),
    SaleStatus.COMPLETED: frozenset({SaleStatus.REFUNDED}),
    SaleStatus.CANCELLED: frozenset(),
    SaleStatus.REFUNDED: frozenset(),
}

EDITABLE_STATUSES = frozenset({SaleStatus.DRAFT, SaleStatus.PENDING})

# Display order for next-status lists
_STATUS_ORDER = list(SaleStatus)


def parse_status(value) -> SaleStatus:
    """Coerce a string (or SaleStatus) into the closed status type."""
    if isinstance(value, SaleStatus):
        return value
    try:
        return SaleStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(
            f"Invalid status '{value}'. Must be one of: {', '.join(s.value for s in SaleStatus)}",
            details={"status": value},
        )


def next_statuses(current: SaleStatus) -> list[SaleStatus]:
    allowed = SALE_STATUS_TRANSITIONS[parse_status(current)]
    return [s for s in _STATUS_ORDER if s in allowed]


def can_transition(from_status: SaleStatus, target: SaleStatus) -> bool:
    return parse_status(target) in SALE_STATUS_TRANSITIONS[parse_status(from_status)]


def sources_for(target: SaleStatus) -> list[SaleStatus]:
    """Statuses from which target is reachable in one step."""
    return [s for s in _STATUS_ORDER if target in SALE_STATUS_TRANSITIONS[s]]


def is_editable(status: SaleStatus) -> bool:
    return parse_status(status) in EDITABLE_STATUSES


def require_transition(sale: Sale, target: SaleStatus, action: str) -> None:
    """
    Raise InvalidStateTransition unless sale.status -> target is in the table.

    The error lists the statuses from which the action would have been allowed.
    """
    if can_transition(sale.status, target):
        return
    raise InvalidStateTransition(
        f"Cannot {action} sale with status {sale.status.value}",
        current_status=sale.status.value,
        allowed_statuses=[s.value for s in sources_for(target)],
        sale_id=sale.id,
    )


def require_editable(sale: Sale, action: str = "edit") -> None:
    if is_editable(sale.status):
        return
    raise InvalidStateTransition(
        f"Cannot {action} sale with status {sale.status.value}",
        current_status=sale.status.value,
        allowed_statuses=[s.value for s in EDITABLE_STATUSES],
        sale_id=sale.id,
    )
