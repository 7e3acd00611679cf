# Overview: Shared session handling for the SQLAlchemy-backed repositories.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..validation import PersistenceError


def commit_or_raise(session, what: str) -> None:
    """Commit, or roll back and raise PersistenceError on any datastore failure."""
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.warning("Failed to persist %s: %s", what, exc)
        raise PersistenceError(f"Failed to persist {what}") from exc


class SqlRepository:
    """
    Base for repositories backed by the Flask-SQLAlchemy session.

    Writes take commit=False so a caller can compose several of them into
    one transaction and commit once with commit_or_raise(). Reads and
    writes both surface datastore failures as PersistenceError.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _read(self, load, *, what: str):
        """Run load(session); roll back and raise PersistenceError if the query fails."""
        session = self.session
        try:
            return load(session)
        except SQLAlchemyError as exc:
            session.rollback()
            current_app.logger.warning("Failed to load %s: %s", what, exc)
            raise PersistenceError(f"Failed to load {what}") from exc

    def _write(self, obj, *, commit: bool, what: str) -> None:
        session = self.session
        try:
            if obj is not None:
                session.add(obj)
            if commit:
                session.commit()
            else:
                session.flush()
        except SQLAlchemyError as exc:
            session.rollback()
            current_app.logger.warning("Failed to persist %s: %s", what, exc)
            raise PersistenceError(f"Failed to persist {what}") from exc

    def _delete(self, obj, *, commit: bool, what: str) -> None:
        session = self.session
        try:
            session.delete(obj)
            if commit:
                session.commit()
            else:
                session.flush()
        except SQLAlchemyError as exc:
            session.rollback()
            current_app.logger.warning("Failed to delete %s: %s", what, exc)
            raise PersistenceError(f"Failed to delete {what}") from exc
