# Overview: Injected access check for sale operations; denials are written to the security audit log.

"""
Sale Access Policy

A policy is any callable:

    policy(actor: Actor, operation: str, owner_user_id: int | None) -> bool

The engine never decides access on its own. Every sale operation asks the
policy before it mutates anything. The app may inject its own policy through
app.config["SALE_ACCESS_POLICY"]; otherwise role_access_policy applies:

- ADMIN, MANAGER: any sale.
- SALESPERSON: only sales it owns (owner_user_id == actor.user_id).
- Operations not granted to the role are refused outright.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown operations are denied.
- Log denials only: grants are not written to security_events.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from flask import current_app, has_app_context

from ..errors import PermissionDeniedError, SaleNotFound
from ..extensions import db
from ..models import Sale, SecurityEvent, User, UserRole
from ..permissions import DEFAULT_ROLE_OPERATIONS, ELEVATED_ROLES
from ..time_utils import utcnow


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as resolved by the authentication layer."""
    user_id: int
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=user.role)

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES


AccessPolicy = Callable[[Actor, str, "int | None"], bool]


def role_access_policy(actor: Actor, operation: str, owner_user_id: int | None) -> bool:
    granted = DEFAULT_ROLE_OPERATIONS.get(actor.role, frozenset())
    if operation not in granted:
        return False
    if actor.is_elevated:
        return True
    # No owner yet (creating a sale): the actor becomes the owner
    if owner_user_id is None:
        return True
    return owner_user_id == actor.user_id


def get_policy() -> AccessPolicy:
    if has_app_context():
        configured = current_app.config.get("SALE_ACCESS_POLICY")
        if configured is not None:
            return configured
    return role_access_policy


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
) -> SecurityEvent:
    """
    Append a security event and commit it.

    Must be called outside an open UnitOfWork: the commit would otherwise end
    the caller's transaction early.

    event_type examples:
    - PERMISSION_DENIED
    - IDENTITY_MISSING
    - IDENTITY_UNKNOWN
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def require_access(
    actor: Actor,
    operation: str,
    owner_user_id: int | None = None,
    resource: str | None = None,
    policy: AccessPolicy | None = None,
) -> None:
    """
    Ask the policy; on denial log a PERMISSION_DENIED event and raise.

    Usage:
        require_access(actor, SaleOperation.CONFIRM, owner_user_id=sale.user_id, resource="sale:42")
    """
    policy = policy or get_policy()
    if policy(actor, operation, owner_user_id):
        return

    log_security_event(
        user_id=actor.user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=operation,
        reason=f"{actor.role.value} may not {operation} (owner_user_id={owner_user_id})",
    )
    raise PermissionDeniedError(
        "You do not have permission to perform this operation",
        details={"operation": operation, "resource": resource},
    )


def require_sale_access(
    actor: Actor,
    operation: str,
    sale_id: int,
    policy: AccessPolicy | None = None,
) -> int:
    """
    Resolve the sale owner and check access before any lock is taken.

    The owner never changes after creation, so reading it outside the
    UnitOfWork is safe. Returns the owner user id.
    """
    owner_user_id = db.session.query(Sale.user_id).filter_by(id=sale_id).scalar()
    if owner_user_id is None:
        raise SaleNotFound(sale_id)
    require_access(
        actor,
        operation,
        owner_user_id=owner_user_id,
        resource=f"sale:{sale_id}",
        policy=policy,
    )
    return owner_user_id
