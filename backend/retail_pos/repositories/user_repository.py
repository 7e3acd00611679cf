from __future__ import annotations

from ..models import User
from .base import SqlRepository


class UserRepository(SqlRepository):

    def find_all(self) -> list[User]:
        return self._read(
            lambda session: session.query(User).order_by(User.full_name.asc(), User.email.asc()).all(),
            what="users",
        )

    def find_by_id(self, user_id: str) -> User | None:
        return self._read(lambda session: session.get(User, user_id), what=f"user {user_id}")

    def find_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        return self._read(
            lambda session: session.query(User).filter_by(email=email).first(),
            what=f"user {email}",
        )

    def find_by_phone(self, phone: str) -> User | None:
        phone = phone.strip()
        return self._read(
            lambda session: session.query(User).filter_by(phone=phone).first(),
            what=f"user with phone {phone}",
        )

    def save(self, user: User, *, commit: bool = True) -> User:
        self._write(user, commit=commit, what=f"user {user.email}")
        return user

    def update(self, user_id: str, user: User, *, commit: bool = True) -> User | None:
        if self.find_by_id(user_id) is None:
            return None
        self._write(user, commit=commit, what=f"user {user.email}")
        return user

    def delete(self, user_id: str, *, commit: bool = True) -> bool:
        user = self.find_by_id(user_id)
        if user is None:
            return False
        self._delete(user, commit=commit, what=f"user {user.email}")
        return True
