# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Users and credentials

WHY: Every sale is attributed to a cashier, so every operator needs their
own account. Uses bcrypt for password hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- 8-128 characters, at least one letter and one digit
- Plaintext only lives for the duration of create/verify calls
- Token issuance is not handled here; authenticate() only checks credentials
"""

import re

import bcrypt
from flask import current_app

from ..models import User
from ..models.auth import normalize_email
from ..repositories import UserRepository
from ..validation import ConflictError, DomainError, NotFoundError, ValidationError


PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


class AuthenticationError(DomainError):
    """401-level: unknown identifier or wrong password (deliberately indistinguishable)."""


def _users(users: UserRepository | None) -> UserRepository:
    return users if users is not None else UserRepository()


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - 8 to 128 characters
    - At least one letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if not password or not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < PASSWORD_MIN_LENGTH:
        raise PasswordValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")

    if len(password) > PASSWORD_MAX_LENGTH:
        raise PasswordValidationError(f"Password is too long (max {PASSWORD_MAX_LENGTH} characters)")

    if not re.search(r'[a-zA-Z]', password) or not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one letter and one number")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash verifies as False rather than raising.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    email: str,
    password: str,
    full_name: str,
    role: str,
    phone: str | None = None,
    *,
    users: UserRepository | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: invalid email, name or role
        PasswordValidationError: weak password
        ConflictError: email or phone already registered
    """
    users = _users(users)
    normalized = normalize_email(email)

    if users.find_by_email(normalized) is not None:
        raise ConflictError(f"Email {normalized} already exists", details={"email": normalized})

    if phone and phone.strip():
        if users.find_by_phone(phone) is not None:
            raise ConflictError(f"Phone {phone.strip()} already exists", details={"phone": phone.strip()})

    user = User.create(
        email=normalized,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        phone=phone,
    )
    return users.save(user)


def authenticate(identifier: str, password: str, *, users: UserRepository | None = None) -> User:
    """
    Check credentials. identifier is an email if it contains '@', otherwise a phone number.

    Returns the User; raises AuthenticationError with the same message for
    an unknown identifier and for a wrong password.
    """
    users = _users(users)
    identifier = (identifier or "").strip()
    if "@" in identifier:
        user = users.find_by_email(identifier)
    else:
        user = users.find_by_phone(identifier) if identifier else None

    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email/phone or password")
    return user


def get_user(user_id: str, *, users: UserRepository | None = None) -> User:
    user = _users(users).find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


def list_users(*, users: UserRepository | None = None) -> list[User]:
    return _users(users).find_all()


def update_profile(
    user_id: str,
    *,
    email: str | None = None,
    password: str | None = None,
    users: UserRepository | None = None,
) -> User:
    """Change email and/or password. Both are validated before either is applied."""
    users = _users(users)
    user = get_user(user_id, users=users)

    new_email = None
    if email:
        new_email = normalize_email(email)
        if new_email != user.email:
            other = users.find_by_email(new_email)
            if other is not None and other.id != user.id:
                raise ConflictError(f"Email {new_email} already exists", details={"email": new_email})
        else:
            new_email = None

    new_hash = hash_password(password) if password else None

    if new_email is None and new_hash is None:
        return user

    if new_email is not None:
        user.change_email(new_email)
    if new_hash is not None:
        user.replace_password_hash(new_hash)

    updated = users.update(user_id, user)
    if updated is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return updated


def delete_user(user_id: str, *, users: UserRepository | None = None) -> None:
    if not _users(users).delete(user_id):
        raise NotFoundError("User not found", details={"user_id": user_id})
