"""
Thin parameterized-SQL gateway over the Flask-SQLAlchemy session.

Managers use it for aggregate and read queries; ORM models handle the
inserts and updates. Every statement runs on ``db.session`` so both share
one transaction per request.
"""
import logging
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.orm import scoped_session

from extensions import db

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, session=None):
        self._session = session
        self._last_insert_id = None

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _run(self, sql, params=None):
        return self.session.execute(text(sql), params or {})

    def fetch_all(self, sql, params=None):
        """Return every row as a plain dict."""
        result = self._run(sql, params)
        return [dict(row) for row in result.mappings().all()]

    def fetch_row(self, sql, params=None):
        """Return the first row as a dict, or None."""
        row = self._run(sql, params).mappings().first()
        return dict(row) if row is not None else None

    def fetch_value(self, sql, params=None, default=None):
        value = self._run(sql, params).scalar()
        return default if value is None else value

    def execute(self, sql, params=None):
        """Run a write statement and return the affected row count."""
        result = self._run(sql, params)
        self._last_insert_id = getattr(result, "lastrowid", None)
        return result.rowcount

    def last_insert_id(self):
        return self._last_insert_id

    def begin_transaction(self):
        # The session opens a transaction lazily; make it explicit for callers
        session = self.session
        if isinstance(session, scoped_session):
            session = session()
        if not session.in_transaction():
            session.begin()

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    @contextmanager
    def transaction(self):
        """Commit on success, roll back and re-raise on any error."""
        try:
            yield self
            self.commit()
        except Exception:
            logger.debug("Rolling back transaction")
            self.rollback()
            raise
