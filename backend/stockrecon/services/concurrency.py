# Overview: Statement runner; every persistence step commits on its own.

"""
Consistency boundary (authoritative)

- There are no multi-statement transactions. Each call to run_statement is
  one unit: it either commits or is rolled back on its own.
- Multi-step operations (month replace, transfer, undo) are sequences of such
  units. A failure partway leaves the earlier units committed; callers report
  it as a PartialFailureError instead of compensating.
- Only transient lock errors are retried, and only for the failing unit.
"""
from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError

from ..extensions import db

logger = logging.getLogger(__name__)


def run_statement(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute one DB statement and commit it.

    Retries on OperationalError (locked database, deadlock). Any other
    error rolls the unit back and propagates.
    """
    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Statement hit a lock, retrying (attempt %d/%d)", attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
