from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class UserRole(str, enum.Enum):
    """
    Roles resolved by the authentication layer.

    ADMIN and MANAGER act on any sale; SALESPERSON only on sales it owns.
    """
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    SALESPERSON = "SALESPERSON"


class User(db.Model):
    """
    User accounts for attribution and access decisions.

    Credentials live with the authentication layer; this table only carries
    what the sales engine needs: identity, role and whether the account is active.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.Enum(UserRole, native_enum=False, length=16, validate_strings=True),
        nullable=False,
        default=UserRole.SALESPERSON,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
