import logging
from functools import wraps

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class DBException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _rollback(args):
    # Service methods are bound: args[0] is the service holding the session
    db = getattr(args[0], "db", None) if args else None
    if db is not None:
        db.rollback()


def db_exception(func):
    """Translate store errors of plain CRUD writes into DBException."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as e:
            _rollback(args)
            logger.warning(f"{func.__name__}: integrity error {e.orig}")
            raise DBException("Duplicate entry: already exists", 409)
        except SQLAlchemyError as e:
            _rollback(args)
            logger.error(f"{func.__name__}: {type(e).__name__}", exc_info=True)
            raise DBException("Database error occurred", 500)

    return wrapper
