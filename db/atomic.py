# db/atomic.py
import logging
import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from db.extensions import db
from services.errors import StorageTransactionError, WalletError

logger = logging.getLogger(__name__)

# Lost races: version mismatch on flush, lock/serialization failures,
# and a duplicate insert of a lazily created row.
CONFLICT_ERRORS = (StaleDataError, OperationalError, IntegrityError)


def run_atomic(fn, *args, **kwargs):
    """
    Run ``fn`` as one all-or-nothing unit on ``db.session`` and commit.

    Conflicts roll back and re-run ``fn`` from scratch with exponential
    backoff; once attempts are exhausted a StorageTransactionError is raised.
    Domain errors roll back and propagate on the first occurrence. Anything
    else rolls back and propagates untouched.
    """
    max_attempts = max(1, current_app.config.get("ATOMIC_MAX_ATTEMPTS", 3))
    backoff = current_app.config.get("ATOMIC_RETRY_BACKOFF", 0.05)
    name = getattr(fn, "__name__", repr(fn))

    for attempt in range(1, max_attempts + 1):
        try:
            result = fn(*args, **kwargs)
            db.session.commit()
            if attempt > 1:
                logger.info("run_atomic.recovered fn=%s attempt=%s", name, attempt)
            return result
        except WalletError:
            db.session.rollback()
            raise
        except CONFLICT_ERRORS as e:
            db.session.rollback()
            logger.warning("run_atomic.conflict fn=%s attempt=%s/%s error=%s",
                           name, attempt, max_attempts, e.__class__.__name__)
            if attempt >= max_attempts:
                raise StorageTransactionError(
                    "Transaction conflicted, please retry.", operation=name, attempts=attempt
                ) from e
            time.sleep(backoff * (2 ** (attempt - 1)))
        except Exception:
            db.session.rollback()
            raise
