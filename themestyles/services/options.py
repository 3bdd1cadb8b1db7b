"""Persistent site options backed by the ``options`` table."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from themestyles.models.option import Option

logger = logging.getLogger(__name__)


class OptionStore:
    """Read/write interface for named site options."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _row(self, name: str) -> Option | None:
        return self._db.execute(
            select(Option).where(Option.name == name)
        ).scalar_one_or_none()

    def get(self, name: str, default: str | None = None) -> str | None:
        row = self._row(name)
        if row is None:
            return default
        return row.value

    def get_int(self, name: str, default: int | None = None) -> int | None:
        """Return the option as an integer, or ``default`` when unset or malformed."""
        raw = self.get(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Option %s holds a non-integer value", name)
            return default

    def update(self, name: str, value: object) -> None:
        row = self._row(name)
        if row is None:
            self._db.add(Option(name=name, value=str(value)))
        else:
            row.value = str(value)
        try:
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            raise

    def delete(self, name: str) -> bool:
        row = self._row(name)
        if row is None:
            return False
        self._db.delete(row)
        self._db.commit()
        return True
