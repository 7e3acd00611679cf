from __future__ import annotations

import re

from ..extensions import db
from ..ids import new_id
from ..validation import ValidationError, require_choice, require_text
from retail_pos.time_utils import to_utc_z, utcnow


ROLE_OWNER = "Owner"
ROLE_MANAGER = "Manager"
ROLE_CASHIER = "Cashier"
ROLES = {ROLE_OWNER, ROLE_MANAGER, ROLE_CASHIER}

EMAIL_MAX_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def normalize_email(email) -> str:
    """Validate format and return the trimmed, lowercased address."""
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required")

    email = email.strip()
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError(f"Email is too long (max {EMAIL_MAX_LENGTH} characters)")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    return email.lower()


class User(db.Model):
    """
    Staff account.

    WHY: Every sale is attributed to a cashier. Email is unique and stored
    lowercase; phone is optional but unique when present.

    password_hash always holds a bcrypt hash. Plaintext never reaches this
    model; hashing happens in auth_service before create().
    """
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    email = db.Column(db.String(EMAIL_MAX_LENGTH), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=True, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    full_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_CASHIER)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    @classmethod
    def create(
        cls,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        role: str,
        phone: str | None = None,
    ) -> "User":
        now = utcnow()
        return cls(
            id=new_id(),
            email=normalize_email(email),
            phone=phone.strip() if phone and phone.strip() else None,
            password_hash=require_text(password_hash, "password_hash"),
            full_name=require_text(full_name, "full_name"),
            role=require_choice(role, "role", ROLES),
            created_at=now,
            updated_at=now,
        )

    def change_email(self, email: str) -> None:
        self.email = normalize_email(email)
        self.updated_at = utcnow()

    def replace_password_hash(self, password_hash: str) -> None:
        self.password_hash = require_text(password_hash, "password_hash")
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "phone": self.phone,
            "full_name": self.full_name,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
