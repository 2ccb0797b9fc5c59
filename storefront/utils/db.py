"""
storefront/utils/db.py
----------------------
Transaction scope shared by the stores.

Every compound operation (lock → check → write) runs inside one
`transaction()` block:

    with transaction(db.session):
        store.add_line(customer, model)

  • success            → COMMIT (row locks released)
  • StoreError         → ROLLBACK, re-raised unchanged
  • SQLAlchemyError    → ROLLBACK, logged, re-raised as StorageError
                         so the driver message never reaches the caller
"""
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from storefront.errors import StoreError, StorageError


@contextmanager
def transaction(db_session):
    try:
        yield db_session
        db_session.commit()
    except StoreError as exc:
        db_session.rollback()
        current_app.logger.warning(f"Rollback ({type(exc).__name__}): {exc.message}")
        raise
    except SQLAlchemyError as exc:
        db_session.rollback()
        current_app.logger.error(f"Rollback (database error): {exc}")
        raise StorageError() from exc
