"""
Sale status state machine tests (transition table only, no database writes).
"""

from types import SimpleNamespace

import pytest

from comercial.errors import InvalidStateTransition, ValidationError
from comercial.models import SaleStatus
from comercial.services import lifecycle_service


S = SaleStatus


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.PENDING),
        (S.DRAFT, S.CANCELLED),
        (S.PENDING, S.CONFIRMED),
        (S.PENDING, S.CANCELLED),
        (S.CONFIRMED, S.COMPLETED),
        (S.CONFIRMED, S.CANCELLED),
        (S.COMPLETED, S.REFUNDED),
    ],
)
def test_allowed_transitions(current, target):
    assert lifecycle_service.can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.CONFIRMED),
        (S.DRAFT, S.COMPLETED),
        (S.PENDING, S.DRAFT),
        (S.CONFIRMED, S.PENDING),
        (S.COMPLETED, S.CANCELLED),
        (S.CANCELLED, S.DRAFT),
        (S.REFUNDED, S.COMPLETED),
    ],
)
def test_forbidden_transitions(current, target):
    assert not lifecycle_service.can_transition(current, target)


def test_terminal_statuses_have_no_successors():
    assert lifecycle_service.next_statuses(S.CANCELLED) == []
    assert lifecycle_service.next_statuses(S.REFUNDED) == []


def test_next_statuses_in_display_order():
    assert lifecycle_service.next_statuses(S.CONFIRMED) == [S.COMPLETED, S.CANCELLED]


def test_editable_statuses():
    assert lifecycle_service.is_editable(S.DRAFT)
    assert lifecycle_service.is_editable(S.PENDING)
    for status in (S.CONFIRMED, S.COMPLETED, S.CANCELLED, S.REFUNDED):
        assert not lifecycle_service.is_editable(status)


def test_parse_status_accepts_lowercase_strings():
    assert lifecycle_service.parse_status(" pending ") is S.PENDING


def test_parse_status_rejects_unknown_value():
    with pytest.raises(ValidationError):
        lifecycle_service.parse_status("SHIPPED")


def test_require_transition_reports_current_and_allowed_statuses():
    sale = SimpleNamespace(id=7, status=S.DRAFT)
    with pytest.raises(InvalidStateTransition) as exc:
        lifecycle_service.require_transition(sale, S.CONFIRMED, action="confirm")

    details = exc.value.details
    assert details["current_status"] == "DRAFT"
    assert details["allowed_statuses"] == ["PENDING"]
    assert details["sale_id"] == 7
    assert exc.value.status_code == 409


def test_require_editable_lists_editable_statuses():
    sale = SimpleNamespace(id=3, status=S.CONFIRMED)
    with pytest.raises(InvalidStateTransition) as exc:
        lifecycle_service.require_editable(sale)
    assert exc.value.details["allowed_statuses"] == ["DRAFT", "PENDING"]
